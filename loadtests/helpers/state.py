"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
State tracks ids returned by creation endpoints so follow-up operations
can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class OrderState:
    """Tracks state for a single order lifecycle."""

    order_id: str | None = None
    customer_id: str | None = None
    current_status: str = "placed"
    redeemed_points: int = 0


@dataclass
class MileageState:
    """Tracks the balance a simulated customer expects to hold."""

    customer_id: str | None = None
    expected_balance: int = 0
    idempotency_keys: list[str] = field(default_factory=list)
