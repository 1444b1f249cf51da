"""Periodic sweeps — auto-ship drain, bulk dispatch and overdue completion."""

import sys
from datetime import UTC, datetime, timedelta

from commerce.domain import commerce
from commerce.mileage.ledger import MileageLedger
from commerce.order.order import Order, OrderStatus
from commerce.order.transition import transition_order
from commerce.policy import LoyaltyPolicy, configure_policy
from commerce.sweep import complete_overdue_orders, dispatch_orders, drain_auto_shippable, run_sweep
from protean import current_domain
from sweeper import main, sweep_once

PENDING = OrderStatus.PENDING_SHIPMENT.value
SHIPPED = OrderStatus.SHIPPED.value


def _status(order_id):
    return current_domain.repository_for(Order).get(order_id).status


class TestDrain:
    def test_ships_only_auto_ship_orders(self, place_order, advance):
        auto = place_order(auto_ship_enabled=True)
        manual = place_order()
        advance(auto, PENDING)
        advance(manual, PENDING)

        assert list(drain_auto_shippable()) == [auto]
        assert _status(auto) == SHIPPED
        assert _status(manual) == PENDING

    def test_second_drain_is_empty(self, place_order, advance):
        for _ in range(3):
            advance(place_order(auto_ship_enabled=True), PENDING)

        assert len(list(drain_auto_shippable())) == 3
        assert list(drain_auto_shippable()) == []

    def test_drain_is_lazy(self, place_order, advance):
        first = place_order(auto_ship_enabled=True)
        second = place_order(auto_ship_enabled=True)
        advance(first, PENDING)
        advance(second, PENDING)

        shipped = drain_auto_shippable()
        assert next(shipped) == first
        assert _status(second) == PENDING
        assert list(shipped) == [second]

    def test_orders_cancelled_mid_sweep_are_skipped(self, place_order, advance):
        first = place_order(auto_ship_enabled=True)
        second = place_order(auto_ship_enabled=True)
        advance(first, PENDING)
        advance(second, PENDING)

        shipped = drain_auto_shippable()
        assert next(shipped) == first
        transition_order(second, OrderStatus.CANCELLED.value)

        assert list(shipped) == []
        assert _status(second) == OrderStatus.CANCELLED.value

    def test_placed_orders_are_not_eligible(self, place_order):
        place_order(auto_ship_enabled=True)
        assert list(drain_auto_shippable()) == []


class TestDispatch:
    def test_mixed_results(self, place_order, advance):
        ready = place_order()
        advance(ready, PENDING)
        not_ready = place_order()

        outcome = dispatch_orders([ready, not_ready, "missing"])

        assert outcome["success_count"] == 1
        assert outcome["failed_count"] == 2
        statuses = {r["id"]: r["status"] for r in outcome["results"]}
        assert statuses == {ready: "shipped", not_ready: "failed", "missing": "not_found"}
        assert _status(ready) == SHIPPED
        assert _status(not_ready) == OrderStatus.PLACED.value

    def test_dispatching_twice(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING)

        assert dispatch_orders([order_id])["success_count"] == 1
        again = dispatch_orders([order_id])
        assert again["success_count"] == 0
        assert again["results"][0]["status"] == "failed"


class TestOverdueCompletion:
    def test_completes_after_window(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED)

        assert complete_overdue_orders() == []
        later = datetime.now(UTC) + timedelta(days=15)
        assert complete_overdue_orders(now=later) == [order_id]
        assert _status(order_id) == OrderStatus.COMPLETED.value
        assert MileageLedger().balance_of("cust-001") == 500

    def test_window_is_configurable(self, place_order, advance):
        configure_policy(LoyaltyPolicy(auto_complete_after_days=1))
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED)

        assert complete_overdue_orders(now=datetime.now(UTC) + timedelta(days=2)) == [order_id]

    def test_repeat_run_completes_nothing(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED)
        later = datetime.now(UTC) + timedelta(days=30)
        complete_overdue_orders(now=later)
        assert complete_overdue_orders(now=later) == []
        assert len(list(MileageLedger().history_of("cust-001"))) == 1


class TestRunSweep:
    def test_one_pass(self, place_order, advance):
        to_ship = place_order(auto_ship_enabled=True)
        advance(to_ship, PENDING)
        to_complete = place_order()
        advance(to_complete, PENDING, SHIPPED)

        assert run_sweep() == {"shipped": [to_ship], "completed": []}
        assert _status(to_ship) == SHIPPED

    def test_later_pass_completes_everything_shipped(self, place_order, advance):
        shipped = place_order(auto_ship_enabled=True)
        advance(shipped, PENDING)
        run_sweep()

        summary = run_sweep(now=datetime.now(UTC) + timedelta(days=15))
        assert summary == {"shipped": [], "completed": [shipped]}


class TestSweepRunner:
    def test_sweep_once(self, place_order, advance):
        order_id = place_order(auto_ship_enabled=True)
        advance(order_id, PENDING)

        assert sweep_once() == {"shipped": [order_id], "completed": []}
        assert _status(order_id) == SHIPPED
        assert sweep_once() == {"shipped": [], "completed": []}

    def test_main_single_pass(self, place_order, advance, monkeypatch):
        order_id = place_order(auto_ship_enabled=True)
        advance(order_id, PENDING)

        monkeypatch.setattr(commerce, "init", lambda: None)
        monkeypatch.setattr(sys, "argv", ["sweeper", "--once"])
        main()

        assert _status(order_id) == SHIPPED
