"""MileageEntry aggregate — one immutable line of an account's point ledger.

The ledger is append-only. An account's balance is never stored; it is the
sum of the deltas of all its entries. The idempotency key is the identity
of an entry, so a key can be posted at most once.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce
from commerce.mileage.events import MileagePosted


class LedgerReason(Enum):
    ORDER_EARN = "order-earn"
    ORDER_REDEEM = "order-redeem"
    REFUND_REVERSAL = "refund-reversal"
    MANUAL_ADJUSTMENT = "manual-adjustment"


def idempotency_key_for(account_id: str, reason: LedgerReason | str, order_id: str) -> str:
    """System-derived key for order-driven postings: ``account:reason:order``."""
    reason_value = reason.value if isinstance(reason, LedgerReason) else reason
    return f"{account_id}:{reason_value}:{order_id}"


@commerce.aggregate(schema_name="mileage_ledger")
class MileageEntry:
    idempotency_key = String(identifier=True, required=True, max_length=255)
    entry_id = Identifier(required=True)
    account_id = Identifier(required=True)
    delta = Integer(required=True)
    reason = String(required=True, max_length=50, choices=LedgerReason)
    reference_order_id = Identifier()
    description = String(max_length=500)
    created_at = DateTime(required=True)

    @classmethod
    def record(
        cls,
        account_id: str,
        delta: int,
        reason: LedgerReason,
        idempotency_key: str,
        reference_order_id: str | None = None,
        description: str | None = None,
    ):
        now = datetime.now(UTC)
        entry = cls(
            idempotency_key=idempotency_key,
            entry_id=str(uuid4()),
            account_id=account_id,
            delta=delta,
            reason=reason.value,
            reference_order_id=reference_order_id,
            description=description,
            created_at=now,
        )
        entry.raise_(
            MileagePosted(
                entry_id=entry.entry_id,
                idempotency_key=idempotency_key,
                account_id=account_id,
                delta=delta,
                reason=reason.value,
                reference_order_id=reference_order_id,
                posted_at=now,
            )
        )
        return entry
