"""Checkout — turn a buyer's cart into a pending order.

PlaceOrder validates the cart and the delivery request, prices the cart
under the supplier's delivery terms, reserves stock and persists the Order.
The cart itself is only cleared afterwards, by ``checkout()``, so a failed
checkout leaves the buyer's cart exactly as it was.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Date, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart, CartStatus
from ordering.cart.management import ClearCart
from ordering.catalog import get_catalog
from ordering.checkout.schedule import TimeSlot, validate_delivery_date
from ordering.domain import ordering
from ordering.order.order import Order
from ordering.pricing.calculator import Urgency, compute_pricing

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    """Check out a cart with the buyer's delivery choices."""

    cart_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    delivery_date = Date(required=True)
    delivery_slot = String(required=True, choices=TimeSlot)
    urgency = String(choices=Urgency, default=Urgency.NORMAL.value)
    special_instructions = String(max_length=500)
    delivery_address = Text(required=True)  # JSON: address dict
    customer_contact = Text(required=True)  # JSON: contact dict
    payment_method = String(max_length=50)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart = current_domain.repository_for(Cart).get(command.cart_id)
        if str(cart.buyer_id) != str(command.buyer_id):
            raise ValidationError({"cart_id": ["Cart does not belong to this buyer"]})
        if CartStatus(cart.status) != CartStatus.ACTIVE:
            raise ValidationError({"cart_id": ["Only an active cart can be checked out"]})
        if not cart.lines:
            raise ValidationError({"cart_id": ["Cannot check out an empty cart"]})

        catalog = get_catalog()
        terms = catalog.get_delivery_terms(cart.supplier_id)
        validate_delivery_date(command.delivery_date, terms)

        items = cart.snapshot()
        pricing = compute_pricing(items, terms, Urgency(command.urgency or Urgency.NORMAL.value))

        address = (
            json.loads(command.delivery_address)
            if isinstance(command.delivery_address, str)
            else command.delivery_address
        )
        contact = (
            json.loads(command.customer_contact)
            if isinstance(command.customer_contact, str)
            else command.customer_contact
        )

        order = Order.place(
            buyer_id=command.buyer_id,
            supplier_id=cart.supplier_id,
            cart_id=cart.id,
            items=items,
            pricing=pricing,
            urgency=command.urgency or Urgency.NORMAL.value,
            delivery_date=command.delivery_date,
            delivery_slot=command.delivery_slot,
            special_instructions=command.special_instructions,
            delivery_address=address,
            customer_contact=contact,
            payment_method=command.payment_method,
        )

        current_domain.repository_for(Order).add(order)

        # A shortage raises inside the unit of work, so the order is never committed
        quantities = {}
        for item in items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
        catalog.reserve_stock(str(order.id), quantities)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            cart_id=str(cart.id),
            supplier_id=str(cart.supplier_id),
            total=pricing.total.amount,
            currency=pricing.currency,
        )
        return str(order.id)


def checkout(
    cart_id,
    buyer_id,
    delivery_date,
    delivery_slot,
    delivery_address,
    customer_contact,
    urgency=Urgency.NORMAL.value,
    special_instructions=None,
    payment_method=None,
):
    """Place the order, then clear the cart. Returns the new order id.

    If placing the order fails, the exception propagates and the cart is
    untouched.
    """
    order_id = current_domain.process(
        PlaceOrder(
            cart_id=cart_id,
            buyer_id=buyer_id,
            delivery_date=delivery_date,
            delivery_slot=delivery_slot,
            urgency=urgency,
            special_instructions=special_instructions,
            delivery_address=json.dumps(delivery_address),
            customer_contact=json.dumps(customer_contact),
            payment_method=payment_method,
        ),
        asynchronous=False,
    )
    current_domain.process(ClearCart(cart_id=cart_id, order_id=order_id), asynchronous=False)
    return order_id
