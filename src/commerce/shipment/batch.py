"""ShipmentBatch and PendingShipment aggregates.

A batch groups orders awaiting dispatch. Membership is an explicit relation
keyed by order id (``pending_shipments``), so an order belongs to at most
one batch and lookups never scan a list of ids. New orders always join the
single OPEN batch; a SEALED batch keeps its members until they ship or are
cancelled, but takes no new ones.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String

from commerce.domain import commerce
from commerce.shipment.events import BatchAutoShipToggled, BatchOpened, BatchSealed


class BatchStatus(Enum):
    OPEN = "open"
    SEALED = "sealed"


@commerce.aggregate(schema_name="shipment_batches")
class ShipmentBatch:
    status = String(
        max_length=20,
        choices=BatchStatus,
        default=BatchStatus.OPEN.value,
    )
    auto_ship_enabled = Boolean(default=False)
    last_toggled_at = DateTime()
    opened_at = DateTime()
    sealed_at = DateTime()

    @classmethod
    def open(cls, auto_ship_enabled: bool = False):
        now = datetime.now(UTC)
        batch = cls(
            status=BatchStatus.OPEN.value,
            auto_ship_enabled=auto_ship_enabled,
            opened_at=now,
        )
        batch.raise_(
            BatchOpened(
                batch_id=str(batch.id),
                auto_ship_enabled=auto_ship_enabled,
                opened_at=now,
            )
        )
        return batch

    @property
    def is_open(self) -> bool:
        return BatchStatus(self.status) == BatchStatus.OPEN

    def seal(self, member_count: int = 0) -> None:
        if not self.is_open:
            raise ValidationError({"status": [f"Batch {self.id} is already sealed"]})
        now = datetime.now(UTC)
        self.status = BatchStatus.SEALED.value
        self.sealed_at = now
        self.raise_(
            BatchSealed(
                batch_id=str(self.id),
                member_count=member_count,
                sealed_at=now,
            )
        )

    def set_auto_ship(self, enabled: bool) -> None:
        """Change the batch default. Members are updated by the caller."""
        now = datetime.now(UTC)
        self.auto_ship_enabled = enabled
        self.last_toggled_at = now
        self.raise_(
            BatchAutoShipToggled(
                batch_id=str(self.id),
                enabled=enabled,
                toggled_at=now,
            )
        )


@commerce.aggregate(schema_name="pending_shipments")
class PendingShipment:
    """Membership of one order in one batch."""

    order_id = Identifier(identifier=True, required=True)
    batch_id = Identifier(required=True)
    enqueued_at = DateTime(required=True)
