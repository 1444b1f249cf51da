"""Manual mileage adjustment — admin earn/spend outside the order flow."""

from uuid import uuid4

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.mileage.entry import LedgerReason, MileageEntry
from commerce.mileage.ledger import MileageLedger


@commerce.command(part_of="MileageEntry")
class AdjustMileage:
    account_id = Identifier(required=True)
    delta = Integer(required=True)
    description = String(max_length=500)
    idempotency_key = String(max_length=255)


@commerce.command_handler(part_of=MileageEntry)
class AdjustMileageHandler:
    @handle(AdjustMileage)
    def adjust(self, command):
        """Post a manual adjustment and return its idempotency key."""
        key = command.idempotency_key or f"{command.account_id}:manual-adjustment:{uuid4()}"
        entry = MileageLedger().post(
            account_id=command.account_id,
            delta=command.delta,
            reason=LedgerReason.MANUAL_ADJUSTMENT,
            idempotency_key=key,
            description=command.description,
        )
        return entry.idempotency_key


def adjust_mileage(account_id: str, delta: int, description: str | None = None, idempotency_key: str | None = None):
    """Process an AdjustMileage command and return the resulting entry."""
    key = current_domain.process(
        AdjustMileage(
            account_id=account_id,
            delta=delta,
            description=description,
            idempotency_key=idempotency_key,
        ),
        asynchronous=False,
    )
    return current_domain.repository_for(MileageEntry).get(key)
