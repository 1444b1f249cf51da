"""Notify customers when an order moves their point balance."""

import structlog
from protean import handle

from commerce.domain import commerce
from commerce.mileage.entry import MileageEntry
from commerce.mileage.events import MileagePosted
from commerce.notification.log import NotificationEvent
from commerce.notification.recorder import notify

logger = structlog.get_logger(__name__)


@commerce.event_handler(part_of=MileageEntry)
class MileageNotificationHandler:
    @handle(MileagePosted)
    def on_mileage_posted(self, event: MileagePosted) -> None:
        # Log rows are keyed by order; manual adjustments have none.
        if not event.reference_order_id:
            logger.debug("Skipping mileage notice without order", entry_id=str(event.entry_id))
            return

        order_id = str(event.reference_order_id)
        notify(
            order_id=order_id,
            recipient_id=str(event.account_id),
            event=NotificationEvent.MILEAGE_POSTED.value,
            subject="Your mileage balance changed",
            payload_summary=f"{event.delta:+d} points ({event.reason}) for order {order_id}",
        )
