"""Cart aggregate (CQRS) — a buyer's pending selection from a single supplier.

The cart is a standard CQRS aggregate (not event sourced). Every mutation
recomputes the stored subtotal in the same atomic change, and a post
invariant rejects any state where the subtotal disagrees with the lines.

Delivery choices (date, slot, urgency) never live on the cart; they arrive
with the checkout request.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ordering.cart.events import (
    CartAbandoned,
    CartCleared,
    CartCreated,
    CartItemAdded,
    CartItemQuantityChanged,
    CartItemRemoved,
)
from ordering.domain import ordering
from ordering.exceptions import CurrencyMismatch, QuantityBelowMinimum, QuantityExceedsStock
from ordering.pricing.calculator import LineItem
from ordering.pricing.money import Money


class CartStatus(Enum):
    ACTIVE = "Active"
    ABANDONED = "Abandoned"


@ordering.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Integer(required=True, min_value=0)  # minor units
    quantity = Integer(required=True, min_value=1)
    weight_grams = Integer(default=0, min_value=0)
    added_at = DateTime()


@ordering.aggregate
class Cart:
    buyer_id = Identifier(required=True)
    supplier_id = Identifier(required=True)
    lines = HasMany(CartLine)
    subtotal = Integer(default=0, min_value=0)  # minor units
    currency = String(max_length=3, default="EUR")
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    last_order_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def subtotal_must_match_lines(self):
        expected = sum(line.unit_price * line.quantity for line in self.lines)
        if self.subtotal != expected:
            raise ValidationError({"subtotal": [f"Cart subtotal {self.subtotal} does not match its lines ({expected})"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, buyer_id, supplier_id, currency="EUR"):
        now = datetime.now(UTC)
        cart = cls(
            buyer_id=buyer_id,
            supplier_id=supplier_id,
            currency=currency,
            subtotal=0,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(
            CartCreated(
                cart_id=str(cart.id),
                buyer_id=str(buyer_id),
                supplier_id=str(supplier_id),
                currency=currency,
                created_at=now,
            )
        )
        return cart

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_active(self):
        if CartStatus(self.status) != CartStatus.ACTIVE:
            raise ValidationError({"status": ["Only an active cart can be changed"]})

    def _assert_sells(self, product):
        if str(product.supplier_id) != str(self.supplier_id):
            raise ValidationError(
                {"product_id": [f"Product {product.product_id} is not sold by supplier {self.supplier_id}"]}
            )
        if product.unit_price.currency != self.currency:
            raise CurrencyMismatch(self.currency, product.unit_price.currency)

    def _line_for(self, product_id):
        return next((line for line in self.lines if str(line.product_id) == str(product_id)), None)

    def _lines_total(self):
        return sum(line.unit_price * line.quantity for line in self.lines)

    def quantity_of(self, product_id) -> int:
        line = self._line_for(product_id)
        return line.quantity if line else 0

    def _change_quantity(self, product, quantity):
        """Move a product's line to ``quantity``, checking stock and minimum bounds."""
        if quantity < 0:
            raise ValidationError({"quantity": [f"Quantity cannot be negative, got {quantity}"]})
        if quantity > product.stock:
            raise QuantityExceedsStock(product.product_id, quantity, product.stock)
        if 0 < quantity < product.minimum_quantity:
            raise QuantityBelowMinimum(product.product_id, quantity, product.minimum_quantity)

        existing = self._line_for(product.product_id)
        previous = existing.quantity if existing else 0
        if quantity == previous:
            return

        now = datetime.now(UTC)
        with atomic_change(self):
            if quantity == 0:
                self.remove_lines(existing)
            elif existing:
                existing.quantity = quantity
                existing.unit_price = product.unit_price.amount
                existing.name = product.name
                existing.weight_grams = product.weight_grams
            else:
                self.add_lines(
                    CartLine(
                        product_id=product.product_id,
                        name=product.name,
                        unit_price=product.unit_price.amount,
                        quantity=quantity,
                        weight_grams=product.weight_grams,
                        added_at=now,
                    )
                )
            self.subtotal = self._lines_total()
            self.updated_at = now

        if quantity == 0:
            self.raise_(
                CartItemRemoved(
                    cart_id=str(self.id),
                    product_id=str(product.product_id),
                    new_subtotal=self.subtotal,
                )
            )
        elif previous == 0:
            self.raise_(
                CartItemAdded(
                    cart_id=str(self.id),
                    product_id=str(product.product_id),
                    quantity=quantity,
                    unit_price=product.unit_price.amount,
                    new_subtotal=self.subtotal,
                )
            )
        else:
            self.raise_(
                CartItemQuantityChanged(
                    cart_id=str(self.id),
                    product_id=str(product.product_id),
                    previous_quantity=previous,
                    new_quantity=quantity,
                    new_subtotal=self.subtotal,
                )
            )

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, quantity):
        """Add ``quantity`` units (may be negative) to the product's line."""
        self._assert_active()
        self._assert_sells(product)
        self._change_quantity(product, self.quantity_of(product.product_id) + quantity)

    def set_item_quantity(self, product, quantity):
        """Set the product's line to an absolute quantity. Zero removes the line."""
        self._assert_active()
        self._assert_sells(product)
        self._change_quantity(product, quantity)

    def remove_item(self, product_id):
        self._assert_active()

        line = self._line_for(product_id)
        if line is None:
            raise ValidationError({"product_id": [f"Product {product_id} is not in the cart"]})

        with atomic_change(self):
            self.remove_lines(line)
            self.subtotal = self._lines_total()
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                product_id=str(product_id),
                new_subtotal=self.subtotal,
            )
        )

    def snapshot(self) -> list[LineItem]:
        """Independent copies of the lines; the cart is left untouched."""
        return [
            LineItem(
                product_id=str(line.product_id),
                name=line.name,
                unit_price=Money(amount=line.unit_price, currency=self.currency),
                quantity=line.quantity,
                weight_grams=line.weight_grams or 0,
            )
            for line in self.lines
        ]

    def subtotal_money(self) -> Money:
        return Money(amount=self.subtotal, currency=self.currency)

    # -------------------------------------------------------------------
    # Cart lifecycle
    # -------------------------------------------------------------------
    def clear(self, order_id):
        """Empty the cart once its contents have become ``order_id``."""
        self._assert_active()

        now = datetime.now(UTC)
        with atomic_change(self):
            for line in list(self.lines):
                self.remove_lines(line)
            self.subtotal = 0
            self.last_order_id = order_id
            self.updated_at = now

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                order_id=str(order_id),
                cleared_at=now,
            )
        )

    def abandon(self):
        """Mark cart as abandoned."""
        self._assert_active()

        self.status = CartStatus.ABANDONED.value
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            CartAbandoned(
                cart_id=str(self.id),
                abandoned_at=now,
            )
        )
