"""Customer notifications driven by order lifecycle events."""

from protean import handle

from commerce.domain import commerce
from commerce.notification.log import NotificationEvent
from commerce.notification.recorder import notify
from commerce.order.events import (
    OrderCancelled,
    OrderCompleted,
    OrderPlaced,
    OrderReturned,
    OrderShipped,
    PaymentConfirmed,
)
from commerce.order.order import Order


@commerce.event_handler(part_of=Order)
class OrderNotificationHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        notify(
            order_id=str(event.order_id),
            recipient_id=str(event.customer_id),
            event=NotificationEvent.ORDER_CONFIRMED.value,
            subject="Your order has been received",
            payload_summary=f"Order {event.order_id} placed, total {event.total_amount}",
        )

    @handle(PaymentConfirmed)
    def on_payment_confirmed(self, event: PaymentConfirmed) -> None:
        notify(
            order_id=str(event.order_id),
            recipient_id=str(event.customer_id),
            event=NotificationEvent.PAYMENT_CONFIRMED.value,
            subject="Payment confirmed",
            payload_summary=f"Payment for order {event.order_id} confirmed; awaiting shipment",
        )

    @handle(OrderShipped)
    def on_order_shipped(self, event: OrderShipped) -> None:
        notify(
            order_id=str(event.order_id),
            recipient_id=str(event.customer_id),
            event=NotificationEvent.SHIPMENT_NOTICE.value,
            subject="Your order is on its way",
            payload_summary=f"Order {event.order_id} shipped",
        )

    @handle(OrderCompleted)
    def on_order_completed(self, event: OrderCompleted) -> None:
        notify(
            order_id=str(event.order_id),
            recipient_id=str(event.customer_id),
            event=NotificationEvent.ORDER_COMPLETED.value,
            subject="Order completed",
            payload_summary=f"Order {event.order_id} completed",
        )

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        notify(
            order_id=str(event.order_id),
            recipient_id=str(event.customer_id),
            event=NotificationEvent.ORDER_CANCELLED.value,
            subject="Order cancelled",
            payload_summary=f"Order {event.order_id} cancelled: {event.reason or 'no reason given'}",
        )

    @handle(OrderReturned)
    def on_order_returned(self, event: OrderReturned) -> None:
        notify(
            order_id=str(event.order_id),
            recipient_id=str(event.customer_id),
            event=NotificationEvent.RETURN_ACCEPTED.value,
            subject="Return accepted",
            payload_summary=f"Return for order {event.order_id} accepted",
        )
