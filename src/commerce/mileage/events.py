"""Mileage ledger events."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="MileageEntry")
class MileagePosted:
    """A ledger entry was appended to an account."""

    __version__ = 1

    entry_id = Identifier(required=True)
    idempotency_key = String(required=True)
    account_id = Identifier(required=True)
    delta = Integer(required=True)
    reason = String(required=True)
    reference_order_id = Identifier()
    posted_at = DateTime(required=True)
