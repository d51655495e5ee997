"""BDD tests for checkout pricing."""

import pytest
from ordering.exceptions import BelowMinimumOrder
from ordering.pricing.calculator import (
    DeliveryTerms,
    LineItem,
    amount_to_free_delivery,
    amount_to_minimum,
    compute_pricing,
)
from ordering.pricing.money import Money
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/checkout_pricing.feature")


def _cents(amount):
    return int(round(amount * 100))


@pytest.fixture()
def priced():
    return {"breakdown": None, "exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse(
        "a supplier with minimum order {minimum:f}, delivery fee {fee:f} and free delivery from {threshold:f}"
    ),
    target_fixture="terms",
)
def _(minimum, fee, threshold):
    return DeliveryTerms(
        minimum_order=_cents(minimum),
        base_delivery_fee=_cents(fee),
        free_delivery_threshold=_cents(threshold),
    )


@given(parsers.cfparse("a cart worth {subtotal:d} cents"), target_fixture="items")
def _(subtotal):
    return [LineItem(product_id="prod-001", name="Mixed goods", unit_price=Money(amount=subtotal), quantity=1)]


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the cart is priced with "{urgency}" delivery'))
def _(items, terms, urgency, priced):
    try:
        priced["breakdown"] = compute_pricing(items, terms, urgency)
    except BelowMinimumOrder as exc:
        priced["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the delivery fee is {amount:d} cents"))
def _(priced, amount):
    assert priced["breakdown"].delivery_fee.amount == amount


@then(parsers.cfparse("the urgency surcharge is {amount:d} cents"))
def _(priced, amount):
    assert priced["breakdown"].urgency_surcharge.amount == amount


@then(parsers.cfparse("the total is {amount:d} cents"))
def _(priced, amount):
    breakdown = priced["breakdown"]
    assert breakdown.total.amount == amount
    assert breakdown.total == breakdown.subtotal + breakdown.delivery_fee + breakdown.urgency_surcharge


@then("pricing is rejected as below the minimum order")
def _(priced):
    assert priced["breakdown"] is None
    assert isinstance(priced["exc"], BelowMinimumOrder)


@then(parsers.cfparse("the buyer needs {amount:d} more cents to check out"))
def _(items, terms, amount):
    assert amount_to_minimum(items[0].line_total, terms).amount == amount


@then(parsers.cfparse("the buyer needs {amount:d} more cents for free delivery"))
def _(items, terms, amount):
    assert amount_to_free_delivery(items[0].line_total, terms).amount == amount
