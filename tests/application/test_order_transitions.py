"""TransitionOrder — status changes with their ledger and batch side effects."""

import pytest
from commerce.errors import InsufficientBalance, InvalidTransition, NotFound
from commerce.mileage.entry import LedgerReason, MileageEntry, idempotency_key_for
from commerce.mileage.ledger import MileageLedger
from commerce.order.order import Order, OrderStatus
from commerce.order.state_machine import OrderStateMachine
from commerce.order.transition import TransitionOrder, transition_order
from commerce.policy import LoyaltyPolicy, configure_policy
from commerce.shipment.manager import ShipmentBatchManager
from protean import current_domain
from protean.exceptions import ValidationError

PENDING = OrderStatus.PENDING_SHIPMENT.value
SHIPPED = OrderStatus.SHIPPED.value
COMPLETED = OrderStatus.COMPLETED.value
CANCELLED = OrderStatus.CANCELLED.value
RETURNED = OrderStatus.RETURNED.value


def _status(order_id):
    return current_domain.repository_for(Order).get(order_id).status


def _entries(account_id="cust-001"):
    return list(MileageLedger().history_of(account_id))


def _entry(order_id, reason, account_id="cust-001"):
    return current_domain.repository_for(MileageEntry).find(idempotency_key_for(account_id, reason, order_id))


class TestFulfillmentPath:
    def test_full_path_earns_reward(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED, COMPLETED)

        assert _status(order_id) == COMPLETED
        earn = _entry(order_id, LedgerReason.ORDER_EARN)
        assert earn.delta == 500
        assert earn.reference_order_id == order_id
        assert MileageLedger().balance_of("cust-001") == 500

    def test_handler_returns_new_status(self, place_order):
        order_id = place_order()
        result = current_domain.process(
            TransitionOrder(order_id=order_id, target_status=PENDING),
            asynchronous=False,
        )
        assert result == PENDING

    def test_no_ledger_effect_before_completion(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED)
        assert _entries() == []

    def test_reward_rate_is_configurable(self, place_order, advance):
        configure_policy(LoyaltyPolicy(reward_rate_bps=1000))
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED, COMPLETED)
        assert MileageLedger().balance_of("cust-001") == 1000

    def test_zero_reward_posts_nothing(self, place_order, advance):
        configure_policy(LoyaltyPolicy(reward_rate_bps=0))
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED, COMPLETED)
        assert _entries() == []

    def test_shipped_at_recorded(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED)
        assert current_domain.repository_for(Order).get(order_id).shipped_at is not None


class TestRetries:
    def test_completing_twice_posts_once(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED, COMPLETED)

        with pytest.raises(InvalidTransition):
            transition_order(order_id, COMPLETED)

        assert len(_entries()) == 1
        assert MileageLedger().balance_of("cust-001") == 500

    def test_expected_status_mismatch(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING)
        with pytest.raises(InvalidTransition) as exc:
            transition_order(order_id, CANCELLED, expected_status=OrderStatus.PLACED.value)
        assert "expected placed" in exc.value.message
        assert _status(order_id) == PENDING

    def test_two_requests_from_same_source_only_one_wins(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED)

        transition_order(order_id, COMPLETED, expected_status=SHIPPED)
        with pytest.raises(InvalidTransition):
            transition_order(order_id, COMPLETED, expected_status=SHIPPED)

        assert len(_entries()) == 1

    def test_stale_copy_loses(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED)

        repo = current_domain.repository_for(Order)
        first = repo.get(order_id)
        second = repo.get(order_id)

        machine = OrderStateMachine()
        machine.transition(first, OrderStatus.COMPLETED)
        with pytest.raises(InvalidTransition) as exc:
            machine.transition(second, OrderStatus.RETURNED)

        assert "changed since it was read" in exc.value.message
        assert _status(order_id) == COMPLETED
        assert _entry(order_id, LedgerReason.REFUND_REVERSAL) is None
        assert MileageLedger().balance_of("cust-001") == 500


class TestRollback:
    def test_failed_reward_posting_keeps_order_shipped(self, place_order, advance, monkeypatch):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED)

        def _unreachable(self, **kwargs):
            raise ConnectionError("ledger store unreachable")

        monkeypatch.setattr(MileageLedger, "post", _unreachable)
        with pytest.raises(ConnectionError):
            transition_order(order_id, COMPLETED)
        monkeypatch.undo()

        assert _status(order_id) == SHIPPED
        assert _entries() == []

    def test_failed_order_write_leaves_no_batch_membership(self, place_order, monkeypatch):
        order_id = place_order()

        def _unwritable(self, item):
            raise ConnectionError("order store unreachable")

        monkeypatch.setattr(type(current_domain.repository_for(Order)), "add", _unwritable)
        with pytest.raises(ConnectionError):
            transition_order(order_id, PENDING)
        monkeypatch.undo()

        assert _status(order_id) == OrderStatus.PLACED.value
        assert ShipmentBatchManager().membership_of(order_id) is None


class TestRejectedTransitions:
    def test_illegal_edge_changes_nothing(self, place_order, advance, grant_points):
        grant_points("cust-001", 1000)
        order_id = place_order(redeem_points=300)
        advance(order_id, PENDING)
        balance_before = MileageLedger().balance_of("cust-001")

        with pytest.raises(InvalidTransition):
            transition_order(order_id, COMPLETED)

        assert _status(order_id) == PENDING
        assert MileageLedger().balance_of("cust-001") == balance_before
        assert ShipmentBatchManager().membership_of(order_id) is not None

    def test_unknown_order(self):
        with pytest.raises(NotFound):
            transition_order("missing-order", PENDING)

    def test_unknown_target_status(self, place_order):
        order_id = place_order()
        with pytest.raises(ValidationError):
            transition_order(order_id, "delivered")
        assert _status(order_id) == OrderStatus.PLACED.value

    def test_unknown_actor(self, place_order):
        order_id = place_order()
        with pytest.raises(ValidationError):
            transition_order(order_id, PENDING, actor="robot")


class TestCancellation:
    def test_cancel_refunds_redemption(self, place_order, advance, grant_points):
        grant_points("cust-001", 1000)
        order_id = place_order(redeem_points=400)
        advance(order_id, PENDING)

        transition_order(order_id, CANCELLED, reason="Changed my mind", actor="customer")

        reversal = _entry(order_id, LedgerReason.REFUND_REVERSAL)
        assert reversal.delta == 400
        assert MileageLedger().balance_of("cust-001") == 1000
        order = current_domain.repository_for(Order).get(order_id)
        assert order.cancellation_reason == "Changed my mind"
        assert order.cancelled_by == "customer"

    def test_cancel_without_redemption_posts_nothing(self, place_order):
        order_id = place_order()
        transition_order(order_id, CANCELLED)
        assert _entries() == []

    def test_cancel_removes_from_batch(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING)
        transition_order(order_id, CANCELLED)
        assert ShipmentBatchManager().membership_of(order_id) is None

    def test_cannot_cancel_shipped_order(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED)
        with pytest.raises(InvalidTransition):
            transition_order(order_id, CANCELLED)


class TestReturns:
    def test_return_after_completion_reverses_earn(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED, COMPLETED)

        transition_order(order_id, RETURNED, reason="Wrong size")

        reversal = _entry(order_id, LedgerReason.REFUND_REVERSAL)
        assert reversal.delta == -500
        assert _entry(order_id, LedgerReason.ORDER_EARN).delta == 500
        assert MileageLedger().balance_of("cust-001") == 0

    def test_return_before_completion_refunds_redemption(self, place_order, advance, grant_points):
        grant_points("cust-001", 1000)
        order_id = place_order(redeem_points=250)
        advance(order_id, PENDING, SHIPPED)

        transition_order(order_id, RETURNED)

        assert _entry(order_id, LedgerReason.REFUND_REVERSAL).delta == 250
        assert MileageLedger().balance_of("cust-001") == 1000

    def test_return_nets_redemption_against_earn(self, place_order, advance, grant_points):
        grant_points("cust-001", 1000)
        order_id = place_order(redeem_points=200)
        advance(order_id, PENDING, SHIPPED, COMPLETED)
        assert MileageLedger().balance_of("cust-001") == 1300

        transition_order(order_id, RETURNED)

        assert _entry(order_id, LedgerReason.REFUND_REVERSAL).delta == -300
        assert MileageLedger().balance_of("cust-001") == 1000

    def test_return_blocked_when_earn_already_spent(self, place_order, advance):
        order_id = place_order()
        advance(order_id, PENDING, SHIPPED, COMPLETED)
        MileageLedger().post(
            account_id="cust-001",
            delta=-400,
            reason=LedgerReason.MANUAL_ADJUSTMENT,
            idempotency_key="spend-1",
        )

        with pytest.raises(InsufficientBalance):
            transition_order(order_id, RETURNED)

        assert _status(order_id) == COMPLETED
        assert _entry(order_id, LedgerReason.REFUND_REVERSAL) is None
        assert MileageLedger().balance_of("cust-001") == 100
