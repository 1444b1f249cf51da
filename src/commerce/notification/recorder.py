"""Best-effort notification recording.

Nothing here may fail the caller: by the time these run the order
transition has already been committed, and a lost log row or email must
never undo it. Every failure is logged and swallowed.
"""

import structlog
from protean.utils.globals import current_domain

from commerce.channel import get_channel
from commerce.notification.log import DeliveryStatus, NotificationLog

logger = structlog.get_logger(__name__)


def record(
    order_id: str,
    channel: str,
    event: str,
    payload_summary: str | None = None,
    recipient_id: str | None = None,
    delivery_status: str = DeliveryStatus.SENT.value,
    message_id: str | None = None,
) -> NotificationLog | None:
    """Append a NotificationLog row. Returns None when the write failed."""
    try:
        entry = NotificationLog.append(
            order_id=order_id,
            channel=channel,
            event=event,
            payload_summary=payload_summary,
            recipient_id=recipient_id,
            delivery_status=delivery_status,
            message_id=message_id,
        )
        current_domain.repository_for(NotificationLog).add(entry)
        return entry
    except Exception as exc:
        logger.error(
            "Failed to record notification",
            order_id=order_id,
            channel=channel,
            notification_event=event,
            error=str(exc),
        )
        return None


def notify(order_id: str, recipient_id: str, event: str, subject: str, payload_summary: str) -> NotificationLog | None:
    """Send a customer message through the channel adapter and log the attempt."""
    try:
        adapter = get_channel()
        channel = adapter.channel
        result = adapter.send(recipient=recipient_id, subject=subject, body=payload_summary)
    except Exception as exc:
        logger.error(
            "Notification dispatch failed",
            order_id=order_id,
            notification_event=event,
            error=str(exc),
        )
        return None

    status = DeliveryStatus.SENT.value if result.get("status") == "sent" else DeliveryStatus.FAILED.value
    if status == DeliveryStatus.FAILED.value:
        logger.warning(
            "Notification not delivered",
            order_id=order_id,
            notification_event=event,
            error=result.get("error"),
        )

    return record(
        order_id=order_id,
        channel=channel,
        event=event,
        payload_summary=payload_summary,
        recipient_id=recipient_id,
        delivery_status=status,
        message_id=result.get("message_id"),
    )
