"""Courier dispatch request — command and handler.

Issued by the lifecycle hook when an order becomes ready for pickup. The
first attempt is made immediately, bounded by the network timeout. If it
fails, the request stays pending with a scheduled retry and the order is
flagged ``dispatch_pending``. The status change that triggered the request
has already been committed either way.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.dispatch.dispatch import DispatchRequest, weight_class_for
from ordering.dispatch.policy import RetryPolicy
from ordering.domain import ordering
from ordering.exceptions import DeliveryNetworkUnavailable
from ordering.network import get_network
from ordering.network.port import CourierRequest
from ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


def find_dispatch_for_order(order_id):
    """Return the order's dispatch request, or None."""
    repo = current_domain.repository_for(DispatchRequest)
    requests = repo._dao.query.filter(order_id=str(order_id)).all().items
    return requests[0] if requests else None


def courier_request_for(order, request) -> CourierRequest:
    address = order.delivery_address.to_dict() if order.delivery_address else {}
    return CourierRequest(
        order_id=str(order.id),
        supplier_id=str(order.supplier_id),
        delivery_address=address,
        weight_class=request.weight_class,
        urgency=request.urgency,
        delivery_date=order.delivery_date,
        delivery_slot=order.delivery_slot,
        special_instructions=order.special_instructions,
    )


def attempt_dispatch(request, order, policy: RetryPolicy) -> bool:
    """Make one courier booking attempt and record its outcome on the request."""
    try:
        result = get_network().request_courier(courier_request_for(order, request), timeout=policy.timeout_seconds)
    except DeliveryNetworkUnavailable as exc:
        request.record_failure(str(exc), policy)
        logger.warning(
            "Courier dispatch attempt failed",
            order_id=str(order.id),
            dispatch_id=str(request.id),
            attempt=request.attempts,
            max_attempts=request.max_attempts,
            next_attempt_at=str(request.next_attempt_at) if request.next_attempt_at else None,
            error=str(exc),
        )
        return False

    request.record_assignment(result.tracking_id, result.courier)
    logger.info(
        "Courier assigned",
        order_id=str(order.id),
        dispatch_id=str(request.id),
        tracking_id=result.tracking_id,
        attempt=request.attempts,
    )
    return True


@ordering.command(part_of="DispatchRequest")
class RequestDispatch:
    order_id = Identifier(required=True)


@ordering.command_handler(part_of=DispatchRequest)
class RequestDispatchHandler:
    @handle(RequestDispatch)
    def request_dispatch(self, command):
        existing = find_dispatch_for_order(command.order_id)
        if existing is not None:
            logger.info(
                "Dispatch already requested for order",
                order_id=str(command.order_id),
                dispatch_id=str(existing.id),
                status=existing.status,
            )
            return str(existing.id)

        order = current_domain.repository_for(Order).get(command.order_id)
        if OrderStatus(order.status) != OrderStatus.READY_FOR_PICKUP:
            raise ValidationError({"status": [f"Order {order.id} is {order.status}, not ready for pickup"]})

        policy = RetryPolicy.from_env()
        request = DispatchRequest.create(
            order_id=order.id,
            supplier_id=order.supplier_id,
            urgency=order.urgency,
            weight_class=weight_class_for(order.total_weight_grams()).value,
            max_attempts=policy.max_attempts,
        )
        attempt_dispatch(request, order, policy)
        current_domain.repository_for(DispatchRequest).add(request)
        return str(request.id)
