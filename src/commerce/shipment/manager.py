"""ShipmentBatchManager — batch membership of orders awaiting shipment."""

from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from commerce.order.order import Order
from commerce.shipment.batch import BatchStatus, PendingShipment, ShipmentBatch

logger = structlog.get_logger(__name__)

_PAGE_SIZE = 100


class ShipmentBatchManager:
    @property
    def batches(self):
        return current_domain.repository_for(ShipmentBatch)

    @property
    def memberships(self):
        return current_domain.repository_for(PendingShipment)

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def membership_of(self, order_id: str) -> PendingShipment | None:
        return self.memberships._dao.query.filter(order_id=order_id).all().first

    def find_batch(self, batch_id: str) -> ShipmentBatch | None:
        return self.batches._dao.query.filter(id=batch_id).all().first

    def open_batch(self) -> ShipmentBatch | None:
        """The batch currently accepting orders, if one exists."""
        return self.batches._dao.query.filter(status=BatchStatus.OPEN.value).order_by(["opened_at", "id"]).limit(1).all().first

    def _paged(self, **filters) -> list[PendingShipment]:
        query = self.memberships._dao.query
        if filters:
            query = query.filter(**filters)
        members = []
        offset = 0
        while True:
            items = (
                query.order_by(["enqueued_at", "order_id"])
                .offset(offset)
                .limit(_PAGE_SIZE)
                .all()
                .items
            )
            members.extend(items)
            if len(items) < _PAGE_SIZE:
                return members
            offset += _PAGE_SIZE

    def members_of(self, batch_id: str) -> list[PendingShipment]:
        return self._paged(batch_id=batch_id)

    def pending(self, auto_ship: bool | None = None) -> list[tuple[PendingShipment, Order]]:
        """Every membership with its order, oldest first, optionally filtered by auto-ship."""
        orders = current_domain.repository_for(Order)
        rows = []
        for membership in self._paged():
            order = orders.find(str(membership.order_id))
            if order is None:
                continue
            if auto_ship is not None and bool(order.auto_ship_enabled) != auto_ship:
                continue
            rows.append((membership, order))
        return rows

    # -------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------
    def enqueue(self, order_id: str) -> ShipmentBatch:
        """Add the order to the open batch, opening one if needed.

        Re-enqueuing a member is a no-op. Returns the batch the order is in.
        """
        existing = self.membership_of(order_id)
        if existing is not None:
            return self.find_batch(existing.batch_id)

        batch = self.open_batch()
        if batch is None:
            batch = ShipmentBatch.open()
            self.batches.add(batch)
            logger.info("Shipment batch opened", batch_id=str(batch.id))

        self.memberships.add(
            PendingShipment(
                order_id=order_id,
                batch_id=str(batch.id),
                enqueued_at=datetime.now(UTC),
            )
        )
        logger.info("Order enqueued for shipment", order_id=order_id, batch_id=str(batch.id))
        return batch

    def dequeue(self, order_id: str) -> bool:
        """Remove the order from its batch. False when it was not a member."""
        membership = self.membership_of(order_id)
        if membership is None:
            return False
        self.memberships._dao.delete(membership)
        logger.info("Order dequeued from shipment", order_id=order_id, batch_id=str(membership.batch_id))
        return True

    # -------------------------------------------------------------------
    # Daily rollover
    # -------------------------------------------------------------------
    def seal_open_batch(self) -> ShipmentBatch | None:
        batch = self.open_batch()
        if batch is None:
            return None
        batch.seal(member_count=len(self.members_of(str(batch.id))))
        self.batches.add(batch)
        logger.info("Shipment batch sealed", batch_id=str(batch.id))
        return batch
