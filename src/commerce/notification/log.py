"""NotificationLog — append-only audit of customer-facing messages.

Rows are written by observers of order and ledger events and only ever read
for display; no business rule depends on them.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String

from commerce.domain import commerce


class NotificationEvent(Enum):
    ORDER_CONFIRMED = "order-confirmed"
    PAYMENT_CONFIRMED = "payment-confirmed"
    SHIPMENT_NOTICE = "shipment-notice"
    ORDER_COMPLETED = "order-completed"
    ORDER_CANCELLED = "order-cancelled"
    RETURN_ACCEPTED = "return-accepted"
    MILEAGE_POSTED = "mileage-posted"


class DeliveryStatus(Enum):
    SENT = "sent"
    FAILED = "failed"


@commerce.aggregate(schema_name="email_logs")
class NotificationLog:
    order_id = Identifier(required=True)
    recipient_id = Identifier()
    channel = String(required=True, max_length=50)
    event = String(required=True, max_length=100)
    delivery_status = String(max_length=20, choices=DeliveryStatus, default=DeliveryStatus.SENT.value)
    message_id = String(max_length=100)
    payload_summary = String(max_length=1000)
    sent_at = DateTime(required=True)

    @classmethod
    def append(
        cls,
        order_id: str,
        channel: str,
        event: str,
        payload_summary: str | None = None,
        recipient_id: str | None = None,
        delivery_status: str = DeliveryStatus.SENT.value,
        message_id: str | None = None,
    ):
        return cls(
            order_id=order_id,
            recipient_id=recipient_id,
            channel=channel,
            event=event,
            delivery_status=delivery_status,
            message_id=message_id,
            payload_summary=payload_summary,
            sent_at=datetime.now(UTC),
        )


@commerce.repository(part_of=NotificationLog)
class NotificationLogRepository:
    def for_order(self, order_id: str, limit: int = 100) -> list[NotificationLog]:
        """Entries for an order, most recent first."""
        query = self._dao.query.filter(order_id=order_id)
        return query.order_by(["-sent_at", "id"]).limit(limit).all().items

    def recent(self, limit: int = 100) -> list[NotificationLog]:
        """Entries across every order, most recent first."""
        return self._dao.query.order_by(["-sent_at", "id"]).limit(limit).all().items
