"""OrderStateMachine — applies one lifecycle edge together with its side effects.

A transition runs in three phases:

1. Validate: the order exists, the edge is in the transition table, the
   order is in the state the caller expected, and every ledger posting the
   edge implies is affordable and in range. Nothing is written yet.
2. Guard: re-read the persisted order and require it to still be in the
   source state, so two requests racing from the same state cannot both win.
3. Apply: status change, batch membership change and ledger postings.

Callers run this inside a command handler, so phase 3 commits or rolls back
as a single unit of work.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.errors import InvalidTransition, NotFound
from commerce.mileage.entry import LedgerReason, idempotency_key_for
from commerce.mileage.ledger import MileageLedger
from commerce.order.order import Order, OrderStatus
from commerce.policy import LoyaltyPolicy, get_policy
from commerce.shipment.manager import ShipmentBatchManager

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlannedPosting:
    account_id: str
    delta: int
    reason: LedgerReason
    idempotency_key: str
    reference_order_id: str
    description: str


class OrderStateMachine:
    def __init__(self, policy: LoyaltyPolicy | None = None):
        self.policy = policy or get_policy()
        self.ledger = MileageLedger(self.policy)
        self.shipments = ShipmentBatchManager()

    @property
    def orders(self):
        return current_domain.repository_for(Order)

    def load(self, order_id: str) -> Order:
        try:
            return self.orders.get(order_id)
        except ObjectNotFoundError:
            raise NotFound(f"Order {order_id} not found") from None

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    def apply(
        self,
        order_id: str,
        target: OrderStatus,
        expected: OrderStatus | None = None,
        reason: str | None = None,
        actor: str | None = None,
    ) -> Order:
        """Load the order and move it to ``target``."""
        return self.transition(self.load(order_id), target, expected=expected, reason=reason, actor=actor)

    def transition(
        self,
        order: Order,
        target: OrderStatus,
        expected: OrderStatus | None = None,
        reason: str | None = None,
        actor: str | None = None,
    ) -> Order:
        order_id = str(order.id)
        source = order.current_status

        if expected is not None and source != expected:
            raise InvalidTransition(
                order_id,
                source.value,
                target.value,
                message=f"Order {order_id} is {source.value}, expected {expected.value}",
            )
        if not order.can_transition_to(target):
            raise InvalidTransition(order_id, source.value, target.value)

        postings = self.plan_postings(order, target)
        self.check_postings(postings)

        if self.orders.find_in_status(order_id, source) is None:
            raise InvalidTransition(
                order_id,
                source.value,
                target.value,
                message=f"Order {order_id} changed since it was read; it is no longer {source.value}",
            )

        order.transition_to(target, reason=reason, actor=actor)
        self._apply_membership(order, target)
        self.orders.add(order)

        for posting in postings:
            self.ledger.post(
                account_id=posting.account_id,
                delta=posting.delta,
                reason=posting.reason,
                idempotency_key=posting.idempotency_key,
                reference_order_id=posting.reference_order_id,
                description=posting.description,
            )

        logger.info(
            "Order transitioned",
            order_id=order_id,
            from_status=source.value,
            to_status=target.value,
            actor=actor,
            postings=len(postings),
        )
        return order

    # -------------------------------------------------------------------
    # Side effects
    # -------------------------------------------------------------------
    def plan_postings(self, order: Order, target: OrderStatus) -> list[PlannedPosting]:
        """Ledger entries implied by moving ``order`` to ``target``."""
        account_id = str(order.customer_id)
        order_id = str(order.id)
        redeemed = order.redeemed_points or 0

        if target == OrderStatus.COMPLETED:
            reward = self.policy.reward_for(order.total_amount)
            if reward <= 0:
                return []
            return [
                PlannedPosting(
                    account_id=account_id,
                    delta=reward,
                    reason=LedgerReason.ORDER_EARN,
                    idempotency_key=idempotency_key_for(account_id, LedgerReason.ORDER_EARN, order_id),
                    reference_order_id=order_id,
                    description=f"Reward for order {order_id}",
                )
            ]

        if target == OrderStatus.CANCELLED:
            if redeemed <= 0:
                return []
            return [self._reversal(account_id, order_id, redeemed, "Redemption refunded on cancellation")]

        if target == OrderStatus.RETURNED:
            # One net reversal per order: the redemption comes back, the earn goes away.
            earn = self.ledger.repository.find(idempotency_key_for(account_id, LedgerReason.ORDER_EARN, order_id))
            earned = earn.delta if earn is not None else 0
            delta = redeemed - earned
            if delta == 0:
                return []
            return [self._reversal(account_id, order_id, delta, "Reversal on return")]

        return []

    def _reversal(self, account_id: str, order_id: str, delta: int, description: str) -> PlannedPosting:
        return PlannedPosting(
            account_id=account_id,
            delta=delta,
            reason=LedgerReason.REFUND_REVERSAL,
            idempotency_key=idempotency_key_for(account_id, LedgerReason.REFUND_REVERSAL, order_id),
            reference_order_id=order_id,
            description=description,
        )

    def check_postings(self, postings: list[PlannedPosting]) -> None:
        """Fail before any write if a posting would be rejected."""
        balances: dict[str, int] = {}
        for posting in postings:
            if self.ledger.repository.find(posting.idempotency_key) is not None:
                continue
            if posting.account_id not in balances:
                balances[posting.account_id] = self.ledger.balance_of(posting.account_id)
            balances[posting.account_id] = self.ledger.check(
                posting.account_id,
                posting.delta,
                balance=balances[posting.account_id],
            )

    def _apply_membership(self, order: Order, target: OrderStatus) -> None:
        if target == OrderStatus.PENDING_SHIPMENT:
            batch = self.shipments.enqueue(str(order.id))
            if batch is not None and batch.auto_ship_enabled and not order.auto_ship_enabled:
                order.set_auto_ship(True)
        elif target in (OrderStatus.SHIPPED, OrderStatus.CANCELLED):
            self.shipments.dequeue(str(order.id))
