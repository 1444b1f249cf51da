"""Shared BDD fixtures and step definitions for the commerce domain."""

import pytest
from commerce.errors import CommerceError
from commerce.mileage.ledger import MileageLedger
from commerce.order.order import Order
from commerce.policy import LoyaltyPolicy, configure_policy
from protean import current_domain
from pytest_bdd import given, parsers, then

DEFAULT_ITEMS = [
    {"product_id": "prod-kb", "quantity": 1, "unit_price": 6000},
    {"product_id": "prod-mp", "quantity": 2, "unit_price": 2000},
]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the error a When step captured."""
    return {"exc": None}


@pytest.fixture()
def labels():
    """Scenario order labels ("O1") mapped to generated order ids."""
    return {}


def _items_totalling(total: int) -> list[dict]:
    if total == 10000:
        return DEFAULT_ITEMS
    return [{"product_id": "prod-any", "quantity": 1, "unit_price": total}]


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("the reward rate is {bps:d} basis points"))
def _(bps):
    configure_policy(LoyaltyPolicy(reward_rate_bps=bps))


@given(parsers.cfparse('"{account_id}" holds {points:d} points'))
def _(grant_points, account_id, points):
    grant_points(account_id, points)


@given(
    parsers.cfparse('a pending order for "{customer_id}" totalling {total:d}'),
    target_fixture="order_id",
)
def _(place_order, advance, customer_id, total):
    order_id = place_order(customer_id=customer_id, items=_items_totalling(total))
    advance(order_id, "pending_shipment")
    return order_id


@given(
    parsers.cfparse('a pending order for "{customer_id}" totalling {total:d} redeeming {points:d} points'),
    target_fixture="order_id",
)
def _(place_order, advance, customer_id, total, points):
    order_id = place_order(customer_id=customer_id, items=_items_totalling(total), redeem_points=points)
    advance(order_id, "pending_shipment")
    return order_id


@given(parsers.cfparse('pending orders "{first}" and "{second}" in the open batch'))
def _(place_order, advance, labels, first, second):
    for label in (first, second):
        labels[label] = place_order()
        advance(labels[label], "pending_shipment")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order_id, status):
    assert current_domain.repository_for(Order).get(order_id).status == status


@then(parsers.cfparse('the balance of "{account_id}" is {balance:d}'))
def _(account_id, balance):
    assert MileageLedger().balance_of(account_id) == balance


@then(parsers.cfparse('"{account_id}" has {count:d} ledger entries'))
def _(account_id, count):
    assert len(list(MileageLedger().history_of(account_id))) == count


@then(parsers.cfparse("the {action} is rejected as an invalid transition"))
def _(error, action):
    assert isinstance(error["exc"], CommerceError)
    assert error["exc"].kind == "InvalidTransition"


@then(parsers.cfparse("the {action} is rejected for insufficient balance"))
def _(error, action):
    assert isinstance(error["exc"], CommerceError)
    assert error["exc"].kind == "InsufficientBalance"
