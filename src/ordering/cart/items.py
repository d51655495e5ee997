"""Cart item management — commands and handler.

Product name, price, stock and minimum quantity are read from the catalogue
on every change, so a line always reflects the catalogue at the time it was
last touched.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.cart.management import find_active_cart
from ordering.catalog import get_catalog
from ordering.domain import ordering


@ordering.command(part_of="Cart")
class AddToCart:
    """Add units of a product, opening a cart with the supplier if needed.

    ``quantity`` is a delta and may be negative.
    """

    buyer_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@ordering.command(part_of="Cart")
class SetCartItemQuantity:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=0)


@ordering.command(part_of="Cart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@ordering.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = get_catalog().get_product(command.product_id)
        if str(product.supplier_id) != str(command.supplier_id):
            raise ValidationError(
                {"product_id": [f"Product {command.product_id} is not sold by supplier {command.supplier_id}"]}
            )

        repo = current_domain.repository_for(Cart)
        cart = find_active_cart(command.buyer_id, command.supplier_id)
        if cart is None:
            cart = Cart.create(
                buyer_id=command.buyer_id,
                supplier_id=command.supplier_id,
                currency=product.unit_price.currency,
            )

        cart.add_item(product, command.quantity)
        repo.add(cart)
        return str(cart.id)

    @handle(SetCartItemQuantity)
    def set_item_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        product = get_catalog().get_product(command.product_id)
        cart.set_item_quantity(product, command.quantity)
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.remove_item(command.product_id)
        repo.add(cart)
