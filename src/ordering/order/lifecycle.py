"""Order lifecycle — the single entry point for status changes.

All status changes go through TransitionOrder. Callers outside a handler use
``transition_order()``, which processes the command under the order's lock
so that racing actors are applied one after another.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import ActingRole, CancellationReason, Order, OrderStatus
from ordering.utils.locks import process_for_order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    target_status = String(required=True, choices=OrderStatus)
    acting_role = String(required=True, choices=ActingRole)
    reason_code = String(choices=CancellationReason)
    expected_revision = Integer()


@ordering.command_handler(part_of=Order)
class TransitionOrderHandler:
    @handle(TransitionOrder)
    def transition(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        changed = order.transition(
            target=command.target_status,
            acting_role=command.acting_role,
            reason_code=command.reason_code,
            expected_revision=command.expected_revision,
        )
        if not changed:
            logger.debug(
                "Order already in requested status",
                order_id=str(order.id),
                status=order.status,
            )
            return False

        repo.add(order)
        logger.info(
            "Order status changed",
            order_id=str(order.id),
            status=order.status,
            acting_role=command.acting_role,
            revision=order.revision,
        )
        return True


def transition_order(order_id, target_status, acting_role, reason_code=None, expected_revision=None) -> bool:
    """Apply a status change under the order's lock. Returns False for a no-op."""
    return process_for_order(
        order_id,
        TransitionOrder(
            order_id=order_id,
            target_status=target_status.value if isinstance(target_status, OrderStatus) else target_status,
            acting_role=acting_role.value if isinstance(acting_role, ActingRole) else acting_role,
            reason_code=reason_code,
            expected_revision=expected_revision,
        ),
    )
