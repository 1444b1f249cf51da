"""Shipment batch events."""

from protean.fields import Boolean, DateTime, Identifier, Integer

from commerce.domain import commerce


@commerce.event(part_of="ShipmentBatch")
class BatchOpened:
    __version__ = 1

    batch_id = Identifier(required=True)
    auto_ship_enabled = Boolean(default=False)
    opened_at = DateTime(required=True)


@commerce.event(part_of="ShipmentBatch")
class BatchSealed:
    """The batch stopped accepting new orders (daily rollover)."""

    __version__ = 1

    batch_id = Identifier(required=True)
    member_count = Integer(default=0)
    sealed_at = DateTime(required=True)


@commerce.event(part_of="ShipmentBatch")
class BatchAutoShipToggled:
    __version__ = 1

    batch_id = Identifier(required=True)
    enabled = Boolean(default=False)
    toggled_at = DateTime(required=True)
