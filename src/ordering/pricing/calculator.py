"""Checkout pricing — pure functions over line items and supplier delivery terms.

Nothing here touches a repository or an adapter, so the same calculation can
run in a cart preview, at checkout, and in tests without a domain context.

    subtotal          = sum(unit_price * quantity)
    delivery_fee      = 0 when subtotal >= free_delivery_threshold, else base fee
    urgency_surcharge = 0 | urgent | express  (from the supplier's terms)
    total             = subtotal + delivery_fee + urgency_surcharge
"""

from dataclasses import dataclass, field
from enum import Enum

from protean.exceptions import ValidationError

from ordering.exceptions import BelowMinimumOrder
from ordering.pricing.money import Money


class Urgency(Enum):
    NORMAL = "normal"
    URGENT = "urgent"
    EXPRESS = "express"


# Used when a supplier sets no surcharges of its own
DEFAULT_URGENCY_SURCHARGES = {Urgency.URGENT: 500, Urgency.EXPRESS: 1500}


@dataclass(frozen=True)
class LineItem:
    """A priced line: the unit price and quantity captured from the cart."""

    product_id: str
    name: str
    unit_price: Money
    quantity: int
    weight_grams: int = 0

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValidationError({"quantity": [f"Line quantity must be positive, got {self.quantity}"]})

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class DeliveryTerms:
    """A supplier's delivery conditions, owned by the catalogue.

    Amounts are in minor units of ``currency``. ``available_delivery_days``
    holds ``date.weekday()`` numbers; empty means every day.
    """

    minimum_order: int = 0
    base_delivery_fee: int = 0
    free_delivery_threshold: int | None = None
    lead_time_days: int = 1
    available_delivery_days: frozenset[int] = frozenset()
    urgency_surcharges: dict = field(default_factory=lambda: dict(DEFAULT_URGENCY_SURCHARGES))
    currency: str = "EUR"

    def __post_init__(self):
        urgent = self.surcharge_amount(Urgency.URGENT)
        express = self.surcharge_amount(Urgency.EXPRESS)
        if express <= urgent:
            raise ValidationError(
                {"urgency_surcharges": [f"Express surcharge ({express}) must exceed urgent surcharge ({urgent})"]}
            )
        if any(day not in range(7) for day in self.available_delivery_days):
            raise ValidationError({"available_delivery_days": ["Weekdays must be between 0 (Monday) and 6"]})

    def surcharge_amount(self, urgency: Urgency) -> int:
        if urgency == Urgency.NORMAL:
            return 0
        return int(self.urgency_surcharges.get(urgency, self.urgency_surcharges.get(urgency.value, 0)))

    def money(self, amount: int) -> Money:
        return Money(amount=amount, currency=self.currency)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Money
    delivery_fee: Money
    urgency_surcharge: Money
    total: Money

    @property
    def currency(self) -> str:
        return self.total.currency

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal.amount,
            "delivery_fee": self.delivery_fee.amount,
            "urgency_surcharge": self.urgency_surcharge.amount,
            "total": self.total.amount,
            "currency": self.currency,
        }


def subtotal_of(items, currency: str) -> Money:
    subtotal = Money.zero(currency)
    for item in items:
        subtotal = subtotal + item.line_total
    return subtotal


def delivery_fee_for(subtotal: Money, terms: DeliveryTerms) -> Money:
    threshold = terms.free_delivery_threshold
    if threshold is not None and subtotal >= terms.money(threshold):
        return Money.zero(terms.currency)
    return terms.money(terms.base_delivery_fee)


def compute_pricing(items, terms: DeliveryTerms, urgency: Urgency = Urgency.NORMAL) -> PriceBreakdown:
    """Price a set of line items under a supplier's delivery terms.

    Raises:
        BelowMinimumOrder: the subtotal is below ``terms.minimum_order``.
            The order is never silently topped up.
        CurrencyMismatch: a line is priced in a different currency.
    """
    urgency = Urgency(urgency)
    subtotal = subtotal_of(items, terms.currency)

    minimum = terms.money(terms.minimum_order)
    if subtotal < minimum:
        raise BelowMinimumOrder(subtotal, minimum)

    delivery_fee = delivery_fee_for(subtotal, terms)
    surcharge = terms.money(terms.surcharge_amount(urgency))

    return PriceBreakdown(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        urgency_surcharge=surcharge,
        total=subtotal + delivery_fee + surcharge,
    )


def amount_to_minimum(subtotal: Money, terms: DeliveryTerms) -> Money:
    """How much more the buyer has to add before checkout is allowed."""
    remaining = terms.minimum_order - subtotal.amount
    return terms.money(max(remaining, 0))


def amount_to_free_delivery(subtotal: Money, terms: DeliveryTerms) -> Money | None:
    """How much more unlocks free delivery; ``None`` when the supplier never waives the fee."""
    if terms.free_delivery_threshold is None:
        return None
    remaining = terms.free_delivery_threshold - subtotal.amount
    return terms.money(max(remaining, 0))
