"""Order aggregate (CQRS) — the authoritative lifecycle of a single order.

State Machine:
    PLACED → PENDING_SHIPMENT → SHIPPED → COMPLETED
    {PLACED, PENDING_SHIPMENT} → CANCELLED
    {SHIPPED, COMPLETED} → RETURNED

COMPLETED, CANCELLED and RETURNED are terminal, except that a completed
order can still be returned. The aggregate only validates and records
status changes; ledger postings and shipment-batch membership are applied
alongside by the OrderStateMachine in the same unit of work.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String

from commerce.domain import commerce
from commerce.errors import InvalidTransition
from commerce.order.events import (
    AutoShipToggled,
    OrderCancelled,
    OrderCompleted,
    OrderPlaced,
    OrderReturned,
    OrderShipped,
    PaymentConfirmed,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PLACED = "placed"
    PENDING_SHIPMENT = "pending_shipment"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class Actor(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


_VALID_TRANSITIONS = {
    OrderStatus.PLACED: {OrderStatus.PENDING_SHIPMENT, OrderStatus.CANCELLED},
    OrderStatus.PENDING_SHIPMENT: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.COMPLETED, OrderStatus.RETURNED},
    OrderStatus.COMPLETED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # terminal
    OrderStatus.RETURNED: set(),  # terminal
}

TERMINAL_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.RETURNED}


def parse_status(value: str, field: str = "status") -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError({field: [f"Unknown order status '{value}'. Expected one of: {allowed}"]}) from None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order", schema_name="order_items")
class OrderItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)  # minor currency units

    @property
    def subtotal(self) -> int:
        return self.quantity * self.unit_price


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@commerce.aggregate(schema_name="orders")
class Order:
    customer_id = Identifier(required=True)
    status = String(
        max_length=50,
        choices=OrderStatus,
        default=OrderStatus.PLACED.value,
    )
    items = HasMany(OrderItem)
    total_amount = Integer(required=True, min_value=0)
    redeemed_points = Integer(default=0, min_value=0)
    auto_ship_enabled = Boolean(default=False)
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    return_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()
    shipped_at = DateTime()
    completed_at = DateTime()
    cancelled_at = DateTime()
    returned_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id: str,
        items_data: list[dict],
        redeemed_points: int = 0,
        auto_ship_enabled: bool = False,
    ):
        """Create an order from checkout. ``total_amount`` is fixed here."""
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        items = [
            OrderItem(
                product_id=item["product_id"],
                quantity=item["quantity"],
                unit_price=item["unit_price"],
            )
            for item in items_data
        ]
        total_amount = sum(item.subtotal for item in items)

        if redeemed_points < 0:
            raise ValidationError({"redeemed_points": ["Redeemed points cannot be negative"]})
        if redeemed_points > total_amount:
            raise ValidationError({"redeemed_points": ["Cannot redeem more points than the order total"]})

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            status=OrderStatus.PLACED.value,
            total_amount=total_amount,
            redeemed_points=redeemed_points,
            auto_ship_enabled=auto_ship_enabled,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_items(item)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=customer_id,
                items=json.dumps(
                    [
                        {"product_id": i.product_id, "quantity": i.quantity, "unit_price": i.unit_price}
                        for i in items
                    ]
                ),
                total_amount=total_amount,
                redeemed_points=redeemed_points,
                auto_ship_enabled=auto_ship_enabled,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helpers
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in _VALID_TRANSITIONS.get(self.current_status, set())

    def _assert_can_transition(self, target: OrderStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidTransition(str(self.id), self.current_status.value, target.value)

    def transition_to(
        self,
        target: OrderStatus,
        reason: str | None = None,
        actor: str | None = None,
    ) -> None:
        """Apply the lifecycle edge ending in ``target``."""
        if target == OrderStatus.PENDING_SHIPMENT:
            self.confirm_payment()
        elif target == OrderStatus.SHIPPED:
            self.ship(shipped_by=actor)
        elif target == OrderStatus.COMPLETED:
            self.complete()
        elif target == OrderStatus.CANCELLED:
            self.cancel(reason=reason, cancelled_by=actor)
        elif target == OrderStatus.RETURNED:
            self.accept_return(reason=reason)
        else:
            # Nothing transitions back to PLACED
            raise InvalidTransition(str(self.id), self.current_status.value, target.value)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def confirm_payment(self) -> None:
        self._assert_can_transition(OrderStatus.PENDING_SHIPMENT)
        now = datetime.now(UTC)
        self.status = OrderStatus.PENDING_SHIPMENT.value
        self.updated_at = now
        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                confirmed_at=now,
            )
        )

    def ship(self, shipped_by: str | None = None) -> None:
        self._assert_can_transition(OrderStatus.SHIPPED)
        now = datetime.now(UTC)
        self.status = OrderStatus.SHIPPED.value
        self.shipped_at = now
        self.updated_at = now
        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                shipped_by=shipped_by or Actor.ADMIN.value,
                shipped_at=now,
            )
        )

    def complete(self) -> None:
        self._assert_can_transition(OrderStatus.COMPLETED)
        now = datetime.now(UTC)
        self.status = OrderStatus.COMPLETED.value
        self.completed_at = now
        self.updated_at = now
        self.raise_(
            OrderCompleted(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                total_amount=self.total_amount,
                completed_at=now,
            )
        )

    def cancel(self, reason: str | None = None, cancelled_by: str | None = None) -> None:
        """Cancel before shipment. Allowed from PLACED and PENDING_SHIPMENT only."""
        self._assert_can_transition(OrderStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by or Actor.CUSTOMER.value
        self.cancelled_at = now
        self.updated_at = now
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=reason,
                cancelled_by=self.cancelled_by,
                redeemed_points=self.redeemed_points or 0,
                cancelled_at=now,
            )
        )

    def accept_return(self, reason: str | None = None) -> None:
        self._assert_can_transition(OrderStatus.RETURNED)
        now = datetime.now(UTC)
        self.status = OrderStatus.RETURNED.value
        self.return_reason = reason
        self.returned_at = now
        self.updated_at = now
        self.raise_(
            OrderReturned(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=reason,
                returned_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Auto-ship
    # -------------------------------------------------------------------
    def set_auto_ship(self, enabled: bool) -> None:
        if self.current_status != OrderStatus.PENDING_SHIPMENT:
            raise ValidationError({"auto_ship_enabled": ["Auto-ship can only be changed while awaiting shipment"]})
        if bool(self.auto_ship_enabled) == enabled:
            return
        now = datetime.now(UTC)
        self.auto_ship_enabled = enabled
        self.updated_at = now
        self.raise_(
            AutoShipToggled(
                order_id=str(self.id),
                enabled=enabled,
                toggled_at=now,
            )
        )
