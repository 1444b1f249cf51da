import json
import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay before any domain module is imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("LOG_TO_FILE", "false")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def commerce_bed():
    from commerce.domain import commerce

    bed = DomainFixture(commerce)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(commerce_bed):
    with commerce_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture(autouse=True)
def _adapters():
    """Fresh policy and notification channel for every test."""
    from commerce.channel import reset_channel
    from commerce.policy import reset_policy

    reset_policy()
    reset_channel()
    yield
    reset_policy()
    reset_channel()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------
DEFAULT_ITEMS = [
    {"product_id": "prod-kb", "quantity": 1, "unit_price": 6000},
    {"product_id": "prod-mp", "quantity": 2, "unit_price": 2000},
]


@pytest.fixture()
def place_order():
    """Process a PlaceOrder command and return the new order id.

    The default basket totals 10,000.
    """
    from commerce.order.checkout import PlaceOrder
    from protean import current_domain

    def _place(customer_id="cust-001", items=None, redeem_points=0, auto_ship_enabled=False):
        return current_domain.process(
            PlaceOrder(
                customer_id=customer_id,
                items=json.dumps(items or DEFAULT_ITEMS),
                redeem_points=redeem_points,
                auto_ship_enabled=auto_ship_enabled,
            ),
            asynchronous=False,
        )

    return _place


@pytest.fixture()
def advance():
    """Walk an order through the given statuses, in order."""
    from commerce.order.transition import transition_order

    def _advance(order_id, *statuses):
        for status in statuses:
            transition_order(order_id, status)

    return _advance


@pytest.fixture()
def grant_points():
    from commerce.mileage.adjustment import adjust_mileage

    def _grant(account_id, points, key=None):
        return adjust_mileage(account_id, points, description="Welcome bonus", idempotency_key=key)

    return _grant
