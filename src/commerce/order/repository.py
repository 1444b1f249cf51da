"""Repository for the Order aggregate."""

from collections.abc import Iterator
from datetime import datetime

from commerce.domain import commerce
from commerce.order.order import Order, OrderStatus

_PAGE_SIZE = 100


@commerce.repository(part_of=Order)
class OrderRepository:
    def find(self, order_id: str) -> Order | None:
        return self._dao.query.filter(id=order_id).all().first

    def find_in_status(self, order_id: str, status: OrderStatus) -> Order | None:
        """The persisted order, only if it is still in ``status``."""
        return self._dao.query.filter(id=order_id, status=status.value).all().first

    def with_status(self, status: OrderStatus, **filters) -> Iterator[Order]:
        """All orders in ``status``, oldest first, read page by page."""
        offset = 0
        while True:
            items = (
                self._dao.query.filter(status=status.value, **filters)
                .order_by(["created_at", "id"])
                .offset(offset)
                .limit(_PAGE_SIZE)
                .all()
                .items
            )
            yield from items
            if len(items) < _PAGE_SIZE:
                return
            offset += _PAGE_SIZE

    def auto_shippable(self) -> list[Order]:
        """Orders awaiting shipment with auto-ship switched on."""
        return list(self.with_status(OrderStatus.PENDING_SHIPMENT, auto_ship_enabled=True))

    def shipped_before(self, cutoff: datetime) -> list[Order]:
        overdue = []
        for order in self.with_status(OrderStatus.SHIPPED):
            shipped_at = order.shipped_at
            if shipped_at is None:
                continue
            # Normalize timezone awareness for comparison
            if shipped_at.tzinfo is None and cutoff.tzinfo is not None:
                shipped_at = shipped_at.replace(tzinfo=cutoff.tzinfo)
            elif shipped_at.tzinfo is not None and cutoff.tzinfo is None:
                shipped_at = shipped_at.replace(tzinfo=None)
            if shipped_at <= cutoff:
                overdue.append(order)
        return overdue
