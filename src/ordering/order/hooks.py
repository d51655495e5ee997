"""Lifecycle hooks — side effects owed for entering a status.

OrderStatusChanged carries the hook name computed by the aggregate:

- ``request_dispatch`` on entering ready_for_pickup: ask the Dispatch
  Coordinator for a courier.
- ``settle_reservation`` on entering delivered: the reserved stock has left
  with the courier and is struck from the reservation book.
- ``release_reservation`` on entering cancelled: hand the reserved stock
  back to the catalogue.

Hooks run after the status change is committed. A failing hook is logged and
alerted but never undoes the transition.
"""

import structlog
from protean.exceptions import InvalidOperationError, ValidationError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from ordering.alerts import LIFECYCLE_HOOK_FAILED, get_alerts
from ordering.catalog import get_catalog
from ordering.dispatch.requesting import RequestDispatch
from ordering.domain import ordering
from ordering.exceptions import IntegrationError
from ordering.order.events import OrderStatusChanged
from ordering.order.order import HOOK_RELEASE_RESERVATION, HOOK_REQUEST_DISPATCH, HOOK_SETTLE_RESERVATION, Order

logger = structlog.get_logger(__name__)


def _alert_hook_failure(event: OrderStatusChanged, exc: Exception) -> None:
    get_alerts().raise_alert(
        LIFECYCLE_HOOK_FAILED,
        f"Hook {event.hook} failed for order {event.order_id}",
        order_id=str(event.order_id),
        hook_key=event.hook_key,
        error=str(exc),
    )


@ordering.event_handler(part_of=Order)
class OrderLifecycleHooks:
    """Fires the entry hook of the status an order moved into."""

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        if not event.hook:
            return

        try:
            if event.hook == HOOK_REQUEST_DISPATCH:
                current_domain.process(RequestDispatch(order_id=event.order_id), asynchronous=False)
            elif event.hook == HOOK_SETTLE_RESERVATION:
                get_catalog().settle_reservation(str(event.order_id))
            elif event.hook == HOOK_RELEASE_RESERVATION:
                released = get_catalog().release_reservation(str(event.order_id))
                logger.info(
                    "Released stock for cancelled order",
                    order_id=str(event.order_id),
                    released=released,
                    refund_eligible=event.refund_eligible,
                )
        except (IntegrationError, ValidationError, InvalidOperationError) as exc:
            logger.error(
                "Lifecycle hook failed",
                order_id=str(event.order_id),
                hook=event.hook,
                hook_key=event.hook_key,
                error=str(exc),
            )
            _alert_hook_failure(event, exc)
        except Exception as exc:
            logger.exception(
                "Lifecycle hook crashed",
                order_id=str(event.order_id),
                hook=event.hook,
                hook_key=event.hook_key,
            )
            _alert_hook_failure(event, exc)
