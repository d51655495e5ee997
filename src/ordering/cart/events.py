"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartCreated:
    """A buyer started a cart with a supplier."""

    __version__ = 1

    cart_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    currency = String(max_length=3, required=True)
    created_at = DateTime(required=True)


@ordering.event(part_of="Cart")
class CartItemAdded:
    """A product line was added to the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price = Integer(required=True)
    new_subtotal = Integer(required=True)


@ordering.event(part_of="Cart")
class CartItemQuantityChanged:
    """The quantity of an existing cart line was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    new_subtotal = Integer(required=True)


@ordering.event(part_of="Cart")
class CartItemRemoved:
    """A product line was taken out of the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    new_subtotal = Integer(required=True)


@ordering.event(part_of="Cart")
class CartCleared:
    """The cart was emptied after its contents became an order."""

    __version__ = 1

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    cleared_at = DateTime(required=True)


@ordering.event(part_of="Cart")
class CartAbandoned:
    """The buyer walked away from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    abandoned_at = DateTime(required=True)
