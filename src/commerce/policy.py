"""Loyalty policy — reward rate, redemption caps and auto-completion window.

The business rules are configuration, not code: defaults come from the
environment and tests swap the singleton with ``configure_policy``.
"""

import os
from dataclasses import dataclass

MAX_SAFE_INTEGER = 2**53 - 1


@dataclass(frozen=True)
class LoyaltyPolicy:
    reward_rate_bps: int = 500  # 5.00%
    max_redemption_bps: int = 10_000
    min_redemption_points: int = 0
    auto_complete_after_days: int = 14
    max_safe_points: int = MAX_SAFE_INTEGER

    def __post_init__(self):
        if self.reward_rate_bps < 0 or self.max_redemption_bps < 0:
            raise ValueError("Basis-point rates cannot be negative")
        if self.min_redemption_points < 0:
            raise ValueError("Minimum redemption cannot be negative")
        if self.auto_complete_after_days < 1:
            raise ValueError("Auto-completion window must be at least one day")
        if not 0 < self.max_safe_points <= MAX_SAFE_INTEGER:
            raise ValueError(f"max_safe_points must be within 1..{MAX_SAFE_INTEGER}")

    def reward_for(self, total_amount: int) -> int:
        """Points earned on completion of an order worth ``total_amount``."""
        return total_amount * self.reward_rate_bps // 10_000

    def redemption_cap_for(self, total_amount: int) -> int:
        return total_amount * self.max_redemption_bps // 10_000

    @classmethod
    def from_env(cls) -> "LoyaltyPolicy":
        return cls(
            reward_rate_bps=int(os.environ.get("MILEAGE_REWARD_RATE_BPS", 500)),
            max_redemption_bps=int(os.environ.get("MILEAGE_MAX_REDEMPTION_BPS", 10_000)),
            min_redemption_points=int(os.environ.get("MILEAGE_MIN_REDEMPTION", 0)),
            auto_complete_after_days=int(os.environ.get("ORDER_AUTO_COMPLETE_DAYS", 14)),
            max_safe_points=int(os.environ.get("MILEAGE_MAX_SAFE_POINTS", MAX_SAFE_INTEGER)),
        )


_policy_instance = None


def get_policy() -> LoyaltyPolicy:
    """Return the active policy (singleton, loaded from the environment on first use)."""
    global _policy_instance
    if _policy_instance is None:
        _policy_instance = LoyaltyPolicy.from_env()
    return _policy_instance


def configure_policy(policy: LoyaltyPolicy) -> None:
    global _policy_instance
    _policy_instance = policy


def reset_policy():
    """Reset the policy singleton (useful for testing)."""
    global _policy_instance
    _policy_instance = None
