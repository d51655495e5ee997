"""Dispatch retries — commands and handlers for pending courier requests.

RetryDueDispatches is run periodically by the DispatchRetryWorker (or an
external scheduler). It issues one AttemptDispatch per request whose next
attempt is due, each under the owning order's lock. Before calling the
delivery network the attempt re-reads the order and aborts the request if
the order is no longer waiting for a courier.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import InvalidOperationError, ValidationError
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from ordering.dispatch.dispatch import DispatchRequest, DispatchStatus
from ordering.dispatch.policy import RetryPolicy
from ordering.dispatch.requesting import attempt_dispatch
from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus
from ordering.utils.locks import process_for_order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="DispatchRequest")
class AttemptDispatch:
    dispatch_id = Identifier(required=True)


@ordering.command(part_of="DispatchRequest")
class RetryDueDispatches:
    """Retry every pending dispatch whose next attempt is due."""

    as_of = DateTime()  # Optional: defaults to now


@ordering.command_handler(part_of=DispatchRequest)
class DispatchRetryHandler:
    @handle(AttemptDispatch)
    def attempt(self, command):
        repo = current_domain.repository_for(DispatchRequest)
        request = repo.get(command.dispatch_id)
        if not request.is_pending():
            return False

        order = current_domain.repository_for(Order).get(request.order_id)
        if OrderStatus(order.status) != OrderStatus.READY_FOR_PICKUP or order.dispatch_tracking_id:
            request.abort(f"Order is {order.status}")
            repo.add(request)
            logger.info(
                "Dispatch retry aborted",
                order_id=str(order.id),
                dispatch_id=str(request.id),
                order_status=order.status,
            )
            return False

        assigned = attempt_dispatch(request, order, RetryPolicy.from_env())
        repo.add(request)
        return assigned

    @handle(RetryDueDispatches)
    def retry_due(self, command):
        as_of = command.as_of or datetime.now(UTC)
        repo = current_domain.repository_for(DispatchRequest)

        pending = repo._dao.query.filter(status=DispatchStatus.PENDING.value).all().items
        due = [request for request in pending if request.is_due(as_of)]
        if not due:
            return 0

        attempted = 0
        for request in due:
            try:
                process_for_order(request.order_id, AttemptDispatch(dispatch_id=str(request.id)))
                attempted += 1
            except (ValidationError, InvalidOperationError) as exc:
                logger.warning(
                    "Failed to retry dispatch",
                    dispatch_id=str(request.id),
                    order_id=str(request.order_id),
                    error=str(exc),
                )

        logger.info("Due dispatches retried", attempted=attempted, as_of=str(as_of))
        return attempted
