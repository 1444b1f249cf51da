"""Auto-ship toggling and batch sealing — commands, handlers and the bulk entry point.

``set_auto_ship`` accepts a mix of batch ids and order ids. Ids are grouped
by the batch they belong to and each group is one ToggleAutoShip command,
so a group succeeds or fails as a whole while groups stay independent.
"""

import json
from dataclasses import dataclass, field

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import CommerceError, NotFound
from commerce.order.order import Order
from commerce.shipment.batch import ShipmentBatch
from commerce.shipment.manager import ShipmentBatchManager

logger = structlog.get_logger(__name__)


@commerce.command(part_of="ShipmentBatch")
class ToggleAutoShip:
    batch_id = Identifier(required=True)
    enabled = Boolean(default=False)
    order_ids = Text()  # JSON list; absent means the whole batch


@commerce.command(part_of="ShipmentBatch")
class SealOpenBatch:
    """Close the open batch so new pending orders start a fresh one."""

    sealed_by = String(max_length=50, default="system")


@commerce.command_handler(part_of=ShipmentBatch)
class ShipmentBatchHandler:
    @handle(ToggleAutoShip)
    def toggle_auto_ship(self, command):
        manager = ShipmentBatchManager()
        batch = manager.find_batch(command.batch_id)
        if batch is None:
            raise NotFound(f"Shipment batch {command.batch_id} not found")

        members = {str(m.order_id) for m in manager.members_of(str(batch.id))}
        if command.order_ids:
            order_ids = json.loads(command.order_ids)
            strays = [oid for oid in order_ids if oid not in members]
            if strays:
                raise NotFound(f"Orders {', '.join(strays)} are not in batch {batch.id}")
        else:
            order_ids = sorted(members)
            batch.set_auto_ship(command.enabled)
            current_domain.repository_for(ShipmentBatch).add(batch)

        order_repo = current_domain.repository_for(Order)
        for order_id in order_ids:
            order = order_repo.get(order_id)
            order.set_auto_ship(command.enabled)
            order_repo.add(order)

        logger.info(
            "Auto-ship toggled",
            batch_id=str(batch.id),
            enabled=command.enabled,
            order_count=len(order_ids),
        )
        return order_ids

    @handle(SealOpenBatch)
    def seal_open_batch(self, command):
        batch = ShipmentBatchManager().seal_open_batch()
        return str(batch.id) if batch else None


# ---------------------------------------------------------------------------
# Bulk toggle
# ---------------------------------------------------------------------------
@dataclass
class AutoShipResult:
    results: list[dict] = field(default_factory=list)

    @property
    def updated(self) -> list[str]:
        return [r["id"] for r in self.results if r["status"] == "updated"]

    @property
    def partial(self) -> bool:
        return 0 < len(self.updated) < len(self.results)

    @property
    def succeeded(self) -> bool:
        return bool(self.results) and len(self.updated) == len(self.results)


def set_auto_ship(ids: list[str], enabled: bool) -> AutoShipResult:
    """Toggle auto-ship for batches and/or individual pending orders.

    Each id gets its own result: ``updated``, ``not_found`` or ``failed``.
    """
    manager = ShipmentBatchManager()
    outcome = AutoShipResult()
    order_repo = current_domain.repository_for(Order)
    whole_batches: list[str] = []
    orders_by_batch: dict[str, list[str]] = {}
    statuses: dict[str, dict] = {}

    for raw_id in dict.fromkeys(ids):
        if manager.find_batch(raw_id) is not None:
            whole_batches.append(raw_id)
            continue
        membership = manager.membership_of(raw_id)
        if membership is not None:
            orders_by_batch.setdefault(str(membership.batch_id), []).append(raw_id)
            continue
        order = order_repo.find(raw_id)
        if order is not None:
            statuses[raw_id] = {
                "id": raw_id,
                "status": "failed",
                "error": f"Order {raw_id} is {order.status}, not pending_shipment",
            }
            continue
        statuses[raw_id] = {
            "id": raw_id,
            "status": "not_found",
            "error": f"No shipment batch or pending order with id {raw_id}",
        }

    groups = [(batch_id, [batch_id], None) for batch_id in whole_batches]
    groups += [(batch_id, order_ids, order_ids) for batch_id, order_ids in orders_by_batch.items()]

    for batch_id, reported_ids, order_ids in groups:
        command = ToggleAutoShip(
            batch_id=batch_id,
            enabled=enabled,
            order_ids=json.dumps(order_ids) if order_ids is not None else None,
        )
        try:
            current_domain.process(command, asynchronous=False)
        except (CommerceError, ValidationError, ObjectNotFoundError) as exc:
            message = exc.message if isinstance(exc, CommerceError) else str(exc)
            logger.warning("Auto-ship toggle failed", batch_id=batch_id, error=message)
            for reported in reported_ids:
                statuses[reported] = {"id": reported, "status": "failed", "error": message}
            continue
        for reported in reported_ids:
            statuses[reported] = {"id": reported, "status": "updated"}

    outcome.results = [statuses[raw_id] for raw_id in dict.fromkeys(ids)]
    return outcome
