"""Pydantic API schemas for the commerce domain.

These are the external API contracts, separate from domain commands. Every
successful response is wrapped as ``{"success": true, "data": ...}``.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    unit_price: int = Field(ge=0)


class PlaceOrderRequest(BaseModel):
    customer_id: str
    items: list[OrderItemRequest] = Field(min_length=1)
    redeem_points: int = Field(default=0, ge=0)
    auto_ship_enabled: bool = False


class TransitionRequest(BaseModel):
    target_status: str
    expected_status: str | None = None
    reason: str | None = None


class AutoShipRequest(BaseModel):
    enabled: bool


class DispatchRequest(BaseModel):
    order_ids: list[str] = Field(min_length=1)


class MileageAdjustmentRequest(BaseModel):
    delta: int
    description: str | None = None
    idempotency_key: str | None = None


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------
class OrderItemView(BaseModel):
    product_id: str
    quantity: int
    unit_price: int


class OrderView(BaseModel):
    order_id: str
    customer_id: str
    status: str
    items: list[OrderItemView]
    total_amount: int
    redeemed_points: int
    auto_ship_enabled: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    shipped_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    returned_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    return_reason: str | None = None

    @classmethod
    def from_order(cls, order) -> "OrderView":
        return cls(
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            status=order.status,
            items=[
                OrderItemView(product_id=str(i.product_id), quantity=i.quantity, unit_price=i.unit_price)
                for i in (order.items or [])
            ],
            total_amount=order.total_amount,
            redeemed_points=order.redeemed_points or 0,
            auto_ship_enabled=bool(order.auto_ship_enabled),
            created_at=order.created_at,
            updated_at=order.updated_at,
            shipped_at=order.shipped_at,
            completed_at=order.completed_at,
            cancelled_at=order.cancelled_at,
            returned_at=order.returned_at,
            cancellation_reason=order.cancellation_reason,
            cancelled_by=order.cancelled_by,
            return_reason=order.return_reason,
        )


class PendingShipmentView(BaseModel):
    order_id: str
    batch_id: str
    auto_ship_enabled: bool
    enqueued_at: datetime


class AutoShipItemResult(BaseModel):
    id: str
    status: str
    error: str | None = None


class AutoShipView(BaseModel):
    enabled: bool
    partial: bool
    results: list[AutoShipItemResult]


class DispatchView(BaseModel):
    results: list[dict]
    success_count: int
    failed_count: int


class MileageEntryView(BaseModel):
    entry_id: str
    idempotency_key: str
    account_id: str
    delta: int
    reason: str
    reference_order_id: str | None = None
    description: str | None = None
    created_at: datetime

    @classmethod
    def from_entry(cls, entry) -> "MileageEntryView":
        return cls(
            entry_id=str(entry.entry_id),
            idempotency_key=entry.idempotency_key,
            account_id=str(entry.account_id),
            delta=entry.delta,
            reason=entry.reason,
            reference_order_id=str(entry.reference_order_id) if entry.reference_order_id else None,
            description=entry.description,
            created_at=entry.created_at,
        )


class MileageView(BaseModel):
    account_id: str
    balance: int
    entries: list[MileageEntryView]
    total: int
    offset: int
    limit: int


class MileageLedgerView(BaseModel):
    entries: list[MileageEntryView]
    total: int
    offset: int
    limit: int


class MileageSummaryView(BaseModel):
    account_id: str
    earned: int
    spent: int
    balance: int

    @classmethod
    def from_summary(cls, summary) -> "MileageSummaryView":
        return cls(
            account_id=summary.account_id,
            earned=summary.earned,
            spent=summary.spent,
            balance=summary.balance,
        )


class NotificationLogView(BaseModel):
    log_id: str
    order_id: str
    recipient_id: str | None = None
    channel: str
    event: str
    delivery_status: str
    payload_summary: str | None = None
    sent_at: datetime

    @classmethod
    def from_log(cls, log) -> "NotificationLogView":
        return cls(
            log_id=str(log.id),
            order_id=str(log.order_id),
            recipient_id=str(log.recipient_id) if log.recipient_id else None,
            channel=log.channel,
            event=log.event,
            delivery_status=log.delivery_status,
            payload_summary=log.payload_summary,
            sent_at=log.sent_at,
        )


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------
class Envelope(BaseModel):
    success: bool = True


class OrderIdEnvelope(Envelope):
    data: dict[str, str]


class OrderEnvelope(Envelope):
    data: OrderView


class PendingShipmentsEnvelope(Envelope):
    data: list[PendingShipmentView]


class AutoShipEnvelope(Envelope):
    data: AutoShipView


class DispatchEnvelope(Envelope):
    data: DispatchView


class IdListEnvelope(Envelope):
    data: list[str]


class OptionalIdEnvelope(Envelope):
    data: dict[str, str | None]


class MileageEnvelope(Envelope):
    data: MileageView


class MileageLedgerEnvelope(Envelope):
    data: MileageLedgerView


class MileageSummaryEnvelope(Envelope):
    data: MileageSummaryView


class MileageTotalsEnvelope(Envelope):
    data: list[MileageSummaryView]


class MileageEntryEnvelope(Envelope):
    data: MileageEntryView


class NotificationLogsEnvelope(Envelope):
    data: list[NotificationLogView]
