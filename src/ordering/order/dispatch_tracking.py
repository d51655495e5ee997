"""Dispatch reference on the order — commands and handler.

The Dispatch Coordinator owns the courier request; the order only mirrors
its outcome: a tracking reference, a "dispatch pending" flag while retries
run, or a "manual dispatch required" flag once they are exhausted. Suppliers
who book a courier by hand record the tracking reference directly.
"""

from protean import handle
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class AttachDispatch:
    order_id = Identifier(required=True)
    tracking_id = String(required=True, max_length=255)
    courier = String(max_length=100)
    requested_at = DateTime()


@ordering.command(part_of="Order")
class FlagDispatchPending:
    order_id = Identifier(required=True)
    attempts = Integer(required=True, min_value=0)
    next_attempt_at = DateTime()
    last_error = String(max_length=500)


@ordering.command(part_of="Order")
class RequireManualDispatch:
    order_id = Identifier(required=True)
    attempts = Integer(required=True, min_value=0)
    last_error = String(max_length=500)


@ordering.command(part_of="Order")
class RecordManualDispatch:
    """A supplier booked a courier outside the delivery network."""

    order_id = Identifier(required=True)
    tracking_id = String(required=True, max_length=255)
    courier = String(required=True, max_length=100)


@ordering.command_handler(part_of=Order)
class DispatchTrackingHandler:
    @handle(AttachDispatch)
    def attach_dispatch(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_dispatch(
            tracking_id=command.tracking_id,
            courier=command.courier,
            requested_at=command.requested_at,
        )
        repo.add(order)

    @handle(FlagDispatchPending)
    def flag_dispatch_pending(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.flag_dispatch_pending(
            attempts=command.attempts,
            next_attempt_at=command.next_attempt_at,
            last_error=command.last_error,
        )
        repo.add(order)

    @handle(RequireManualDispatch)
    def require_manual_dispatch(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.require_manual_dispatch(attempts=command.attempts, last_error=command.last_error)
        repo.add(order)

    @handle(RecordManualDispatch)
    def record_manual_dispatch(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_dispatch(
            tracking_id=command.tracking_id,
            courier=command.courier,
            manual=True,
        )
        repo.add(order)
