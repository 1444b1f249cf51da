"""Shipment batches — membership, sealing and auto-ship toggling."""

import pytest
from commerce.errors import NotFound
from commerce.order.order import Order, OrderStatus
from commerce.order.transition import transition_order
from commerce.shipment.auto_ship import SealOpenBatch, ToggleAutoShip, set_auto_ship
from commerce.shipment.batch import BatchStatus, ShipmentBatch
from commerce.shipment.manager import ShipmentBatchManager
from protean import current_domain

PENDING = OrderStatus.PENDING_SHIPMENT.value
SHIPPED = OrderStatus.SHIPPED.value


def _auto_ship(order_id):
    return current_domain.repository_for(Order).get(order_id).auto_ship_enabled


@pytest.fixture()
def pending_order(place_order, advance):
    def _pending(**kwargs):
        order_id = place_order(**kwargs)
        advance(order_id, PENDING)
        return order_id

    return _pending


class TestMembership:
    def test_pending_order_joins_open_batch(self, pending_order):
        order_id = pending_order()
        manager = ShipmentBatchManager()
        membership = manager.membership_of(order_id)
        assert membership is not None
        batch = manager.find_batch(membership.batch_id)
        assert batch.is_open

    def test_orders_share_the_open_batch(self, pending_order):
        first, second = pending_order(), pending_order()
        manager = ShipmentBatchManager()
        assert manager.membership_of(first).batch_id == manager.membership_of(second).batch_id
        assert len(manager.members_of(manager.membership_of(first).batch_id)) == 2

    def test_placed_order_is_not_a_member(self, place_order):
        order_id = place_order()
        assert ShipmentBatchManager().membership_of(order_id) is None

    def test_enqueue_is_idempotent(self, pending_order):
        order_id = pending_order()
        manager = ShipmentBatchManager()
        batch_id = manager.membership_of(order_id).batch_id
        assert str(manager.enqueue(order_id).id) == str(batch_id)
        assert len(manager.members_of(batch_id)) == 1

    def test_shipping_leaves_the_batch(self, pending_order):
        order_id = pending_order()
        transition_order(order_id, SHIPPED)
        assert ShipmentBatchManager().membership_of(order_id) is None

    def test_dequeue_of_non_member(self):
        assert ShipmentBatchManager().dequeue("not-queued") is False

    def test_pending_listing_filters_by_auto_ship(self, pending_order):
        manual = pending_order()
        auto = pending_order(auto_ship_enabled=True)
        manager = ShipmentBatchManager()

        assert [str(o.id) for _, o in manager.pending()] == [manual, auto]
        assert [str(o.id) for _, o in manager.pending(auto_ship=True)] == [auto]
        assert [str(o.id) for _, o in manager.pending(auto_ship=False)] == [manual]


class TestSealing:
    def test_seal_starts_a_fresh_batch(self, pending_order):
        first = pending_order()
        sealed_id = current_domain.process(SealOpenBatch(), asynchronous=False)

        manager = ShipmentBatchManager()
        sealed = manager.find_batch(sealed_id)
        assert sealed.status == BatchStatus.SEALED.value
        assert manager.open_batch() is None

        second = pending_order()
        assert manager.membership_of(second).batch_id != manager.membership_of(first).batch_id
        assert str(manager.membership_of(first).batch_id) == sealed_id

    def test_seal_without_open_batch(self):
        assert current_domain.process(SealOpenBatch(), asynchronous=False) is None

    def test_new_member_inherits_batch_default(self, pending_order):
        first = pending_order()
        batch_id = ShipmentBatchManager().membership_of(first).batch_id
        set_auto_ship([str(batch_id)], True)

        later = pending_order()
        assert _auto_ship(later) is True


class TestToggleCommand:
    def test_unknown_batch(self):
        with pytest.raises(NotFound):
            current_domain.process(ToggleAutoShip(batch_id="no-such-batch", enabled=True), asynchronous=False)

    def test_order_outside_batch_fails_the_group(self, pending_order):
        member = pending_order()
        batch_id = str(ShipmentBatchManager().membership_of(member).batch_id)
        with pytest.raises(NotFound):
            current_domain.process(
                ToggleAutoShip(batch_id=batch_id, enabled=True, order_ids=f'["{member}", "stray"]'),
                asynchronous=False,
            )
        assert _auto_ship(member) is False


class TestSetAutoShip:
    def test_single_orders_and_unknown_ids(self, pending_order):
        o1 = pending_order()
        o2 = pending_order()

        result = set_auto_ship([o2, "O3"], True)

        assert result.results == [
            {"id": o2, "status": "updated"},
            {"id": "O3", "status": "not_found", "error": "No shipment batch or pending order with id O3"},
        ]
        assert result.partial
        assert not result.succeeded
        assert _auto_ship(o2) is True
        assert _auto_ship(o1) is False

    def test_whole_batch(self, pending_order):
        o1, o2 = pending_order(), pending_order()
        batch_id = str(ShipmentBatchManager().membership_of(o1).batch_id)

        result = set_auto_ship([batch_id], True)

        assert result.succeeded
        assert result.updated == [batch_id]
        assert _auto_ship(o1) is True
        assert _auto_ship(o2) is True
        batch = current_domain.repository_for(ShipmentBatch).get(batch_id)
        assert batch.auto_ship_enabled is True

    def test_turning_off(self, pending_order):
        order_id = pending_order(auto_ship_enabled=True)
        result = set_auto_ship([order_id], False)
        assert result.succeeded
        assert _auto_ship(order_id) is False

    def test_duplicates_reported_once(self, pending_order):
        order_id = pending_order()
        result = set_auto_ship([order_id, order_id], True)
        assert len(result.results) == 1

    def test_all_unknown(self):
        result = set_auto_ship(["x", "y"], True)
        assert result.updated == []
        assert not result.partial
        assert {r["status"] for r in result.results} == {"not_found"}

    def test_order_not_awaiting_shipment_fails(self, place_order, pending_order):
        placed = place_order()
        pending = pending_order()

        result = set_auto_ship([placed, pending], True)

        assert result.results == [
            {"id": placed, "status": "failed", "error": f"Order {placed} is placed, not pending_shipment"},
            {"id": pending, "status": "updated"},
        ]
        assert result.partial
        assert _auto_ship(placed) is False
        assert _auto_ship(pending) is True

    def test_shipped_order_fails(self, pending_order):
        order_id = pending_order()
        transition_order(order_id, SHIPPED)

        result = set_auto_ship([order_id], True)

        assert result.results[0]["status"] == "failed"
        assert "shipped" in result.results[0]["error"]
