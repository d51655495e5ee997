"""Cart management — commands and handler.

Handles cart lookup, clearing after checkout, and abandonment. A buyer has at
most one active cart per supplier; the next add-to-cart after an abandonment
starts a fresh one.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart, CartStatus
from ordering.domain import ordering


def find_active_cart(buyer_id, supplier_id):
    """Return the buyer's active cart for a supplier, or None."""
    repo = current_domain.repository_for(Cart)
    carts = (
        repo._dao.query.filter(
            buyer_id=str(buyer_id),
            supplier_id=str(supplier_id),
            status=CartStatus.ACTIVE.value,
        )
        .all()
        .items
    )
    return carts[0] if carts else None


@ordering.command(part_of="Cart")
class ClearCart:
    """Empty a cart after its contents were turned into an order."""

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)


@ordering.command(part_of="Cart")
class AbandonCart:
    """Mark a cart as abandoned."""

    cart_id = Identifier(required=True)


@ordering.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.clear(order_id=command.order_id)
        repo.add(cart)

    @handle(AbandonCart)
    def abandon_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.abandon()
        repo.add(cart)
