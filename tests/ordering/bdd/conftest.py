"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.exceptions import InvalidTransition, Unauthorized
from ordering.order.lifecycle import transition_order
from ordering.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def outcome():
    """Container for the error a When step ran into, if any."""
    return {"exc": None}


def _load(order_id):
    return current_domain.repository_for(Order).get(order_id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a placed order", target_fixture="order_id")
def _(place_order):
    return place_order({"prod-flour": 4})


@given("the order is in transit")
def _(order_id, advance_order):
    advance_order(order_id, "in_transit")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the "{role}" moves the order to "{status}"'))
def _(order_id, role, status, outcome):
    try:
        transition_order(order_id, status, role)
    except (InvalidTransition, Unauthorized) as exc:
        outcome["exc"] = exc


@when(parsers.cfparse('the "{role}" cancels the order because "{reason}"'))
def _(order_id, role, reason, outcome):
    try:
        transition_order(order_id, "cancelled", role, reason_code=reason)
    except (InvalidTransition, Unauthorized) as exc:
        outcome["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert _load(order_id).status == status


@then("the change is refused as unauthorized")
def _(outcome):
    assert isinstance(outcome["exc"], Unauthorized)


@then("the change is refused as an invalid transition")
def _(outcome):
    assert isinstance(outcome["exc"], InvalidTransition)
