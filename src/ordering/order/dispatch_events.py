"""Order reacts to DispatchRequest events — mirrors the courier booking onto the order."""

import structlog
from protean.utils.mixins import handle

from ordering.alerts import DISPATCH_FAILED, get_alerts
from ordering.dispatch.dispatch import DispatchRequest
from ordering.dispatch.events import DispatchAssigned, DispatchAttemptFailed, DispatchFailed
from ordering.domain import ordering
from ordering.order.dispatch_tracking import AttachDispatch, FlagDispatchPending, RequireManualDispatch
from ordering.utils.locks import process_for_order

logger = structlog.get_logger(__name__)


@ordering.event_handler(part_of=DispatchRequest)
class DispatchOrderEventHandler:
    @handle(DispatchAssigned)
    def on_dispatch_assigned(self, event: DispatchAssigned) -> None:
        process_for_order(
            event.order_id,
            AttachDispatch(
                order_id=event.order_id,
                tracking_id=event.tracking_id,
                courier=event.courier,
                requested_at=event.requested_at,
            ),
        )

    @handle(DispatchAttemptFailed)
    def on_dispatch_attempt_failed(self, event: DispatchAttemptFailed) -> None:
        process_for_order(
            event.order_id,
            FlagDispatchPending(
                order_id=event.order_id,
                attempts=event.attempts,
                next_attempt_at=event.next_attempt_at,
                last_error=event.error,
            ),
        )

    @handle(DispatchFailed)
    def on_dispatch_failed(self, event: DispatchFailed) -> None:
        logger.error(
            "Courier dispatch failed, manual dispatch required",
            order_id=str(event.order_id),
            dispatch_id=str(event.dispatch_id),
            attempts=event.attempts,
            error=event.error,
        )
        get_alerts().raise_alert(
            DISPATCH_FAILED,
            f"No courier could be booked for order {event.order_id} after {event.attempts} attempts",
            order_id=str(event.order_id),
            dispatch_id=str(event.dispatch_id),
            error=event.error,
        )
        process_for_order(
            event.order_id,
            RequireManualDispatch(
                order_id=event.order_id,
                attempts=event.attempts,
                last_error=event.error,
            ),
        )
