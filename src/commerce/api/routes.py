"""FastAPI routes for the commerce domain."""

import json

from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from commerce.api.errors import error_response, store_guard
from commerce.api.schemas import (
    AutoShipEnvelope,
    AutoShipRequest,
    AutoShipView,
    DispatchEnvelope,
    DispatchRequest,
    DispatchView,
    IdListEnvelope,
    MileageAdjustmentRequest,
    MileageEntryEnvelope,
    MileageEntryView,
    MileageEnvelope,
    MileageLedgerEnvelope,
    MileageLedgerView,
    MileageSummaryEnvelope,
    MileageSummaryView,
    MileageTotalsEnvelope,
    MileageView,
    NotificationLogsEnvelope,
    NotificationLogView,
    OptionalIdEnvelope,
    OrderEnvelope,
    OrderIdEnvelope,
    OrderView,
    PendingShipmentsEnvelope,
    PendingShipmentView,
    PlaceOrderRequest,
    TransitionRequest,
)
from commerce.errors import NotFound
from commerce.mileage.adjustment import adjust_mileage
from commerce.mileage.ledger import MileageLedger
from commerce.notification.log import NotificationLog
from commerce.order.checkout import PlaceOrder
from commerce.order.order import Actor, Order
from commerce.order.transition import TransitionOrder
from commerce.shipment.auto_ship import SealOpenBatch, set_auto_ship
from commerce.shipment.manager import ShipmentBatchManager
from commerce.sweep import dispatch_orders, drain_auto_shippable

# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _order_view(order_id: str) -> OrderView:
    order = current_domain.repository_for(Order).find(order_id)
    if order is None:
        raise NotFound(f"Order {order_id} not found")
    return OrderView.from_order(order)


@order_router.post("", status_code=201, response_model=OrderIdEnvelope)
async def place_order(body: PlaceOrderRequest) -> OrderIdEnvelope:
    """Complete checkout, redeeming points if requested."""
    command = PlaceOrder(
        customer_id=body.customer_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        redeem_points=body.redeem_points,
        auto_ship_enabled=body.auto_ship_enabled,
    )
    with store_guard():
        order_id = current_domain.process(command, asynchronous=False)
    return OrderIdEnvelope(data={"order_id": order_id})


@order_router.get("/{order_id}", response_model=OrderEnvelope)
async def get_order(order_id: str) -> OrderEnvelope:
    with store_guard():
        return OrderEnvelope(data=_order_view(order_id))


@order_router.post("/{order_id}/transition", response_model=OrderEnvelope)
async def transition_order(
    order_id: str,
    body: TransitionRequest,
    x_actor: str = Header(default=Actor.ADMIN.value),
) -> OrderEnvelope:
    """Move the order along one edge of its lifecycle."""
    command = TransitionOrder(
        order_id=order_id,
        target_status=body.target_status,
        expected_status=body.expected_status,
        reason=body.reason,
        actor=x_actor,
    )
    with store_guard():
        current_domain.process(command, asynchronous=False)
        return OrderEnvelope(data=_order_view(order_id))


# ---------------------------------------------------------------------------
# Shipment Router
# ---------------------------------------------------------------------------
shipment_router = APIRouter(prefix="/shipments", tags=["shipments"])


@shipment_router.get("/pending", response_model=PendingShipmentsEnvelope)
async def list_pending_shipments(auto_ship: bool | None = Query(default=None)) -> PendingShipmentsEnvelope:
    """Orders awaiting dispatch, optionally filtered by their auto-ship flag."""
    views = []
    with store_guard():
        for membership, order in ShipmentBatchManager().pending(auto_ship=auto_ship):
            views.append(
                PendingShipmentView(
                    order_id=str(membership.order_id),
                    batch_id=str(membership.batch_id),
                    auto_ship_enabled=bool(order.auto_ship_enabled),
                    enqueued_at=membership.enqueued_at,
                )
            )
    return PendingShipmentsEnvelope(data=views)


@shipment_router.put("/batches/{ids}/auto-ship", response_model=AutoShipEnvelope)
async def toggle_auto_ship(ids: str, body: AutoShipRequest):
    """Toggle auto-ship for comma-separated batch and/or order ids.

    200 when every id was updated, 207 on partial success, 404 when none were.
    """
    id_list = [i.strip() for i in ids.split(",") if i.strip()]
    with store_guard():
        outcome = set_auto_ship(id_list, body.enabled)

    view = AutoShipView(enabled=body.enabled, partial=outcome.partial, results=outcome.results)
    if outcome.succeeded:
        return AutoShipEnvelope(data=view)
    if outcome.partial:
        return JSONResponse(status_code=207, content=AutoShipEnvelope(data=view).model_dump(mode="json"))
    if all(r["status"] == "not_found" for r in outcome.results):
        return error_response(404, "None of the requested ids were found", "NotFound")
    return JSONResponse(
        status_code=409,
        content={"success": False, "error": "No auto-ship flag was updated", "data": view.model_dump(mode="json")},
    )


@shipment_router.post("/batches/seal", response_model=OptionalIdEnvelope)
async def seal_open_batch() -> OptionalIdEnvelope:
    """Daily rollover: close the open batch."""
    with store_guard():
        batch_id = current_domain.process(SealOpenBatch(), asynchronous=False)
    return OptionalIdEnvelope(data={"batch_id": batch_id})


@shipment_router.post("/drain", response_model=IdListEnvelope)
async def drain() -> IdListEnvelope:
    """Run the auto-ship sweep now."""
    with store_guard():
        shipped = list(drain_auto_shippable())
    return IdListEnvelope(data=shipped)


@shipment_router.post("/dispatch", response_model=DispatchEnvelope)
async def dispatch(body: DispatchRequest, x_actor: str = Header(default=Actor.ADMIN.value)) -> DispatchEnvelope:
    with store_guard():
        result = dispatch_orders(body.order_ids, actor=x_actor)
    return DispatchEnvelope(data=DispatchView(**result))


# ---------------------------------------------------------------------------
# Mileage Router
# ---------------------------------------------------------------------------
mileage_router = APIRouter(prefix="/mileage", tags=["mileage"])


@mileage_router.get("", response_model=MileageLedgerEnvelope)
async def list_mileage(
    account_id: str | None = Query(default=None),
    reason: str | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
) -> MileageLedgerEnvelope:
    """Entries across every account, newest first."""
    with store_guard():
        entries, total = MileageLedger().ledger_page(account_id, offset=offset, limit=limit, reason=reason)
    return MileageLedgerEnvelope(
        data=MileageLedgerView(
            entries=[MileageEntryView.from_entry(e) for e in entries],
            total=total,
            offset=offset,
            limit=limit,
        )
    )


@mileage_router.get("/totals", response_model=MileageTotalsEnvelope)
async def get_mileage_totals() -> MileageTotalsEnvelope:
    with store_guard():
        totals = MileageLedger().totals()
    return MileageTotalsEnvelope(data=[MileageSummaryView.from_summary(s) for s in totals])


@mileage_router.get("/{account_id}", response_model=MileageEnvelope)
async def get_mileage(
    account_id: str,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=20, ge=1, le=100),
    reason: str | None = Query(default=None),
) -> MileageEnvelope:
    """Balance plus one page of history, newest first."""
    ledger = MileageLedger()
    with store_guard():
        balance = ledger.balance_of(account_id)
        entries, total = ledger.history_page(account_id, offset=offset, limit=limit, reason=reason)
    return MileageEnvelope(
        data=MileageView(
            account_id=account_id,
            balance=balance,
            entries=[MileageEntryView.from_entry(e) for e in entries],
            total=total,
            offset=offset,
            limit=limit,
        )
    )


@mileage_router.get("/{account_id}/summary", response_model=MileageSummaryEnvelope)
async def get_mileage_summary(account_id: str) -> MileageSummaryEnvelope:
    with store_guard():
        summary = MileageLedger().summary_of(account_id)
    return MileageSummaryEnvelope(data=MileageSummaryView.from_summary(summary))


@mileage_router.post("/{account_id}/adjustments", status_code=201, response_model=MileageEntryEnvelope)
async def adjust(account_id: str, body: MileageAdjustmentRequest) -> MileageEntryEnvelope:
    """Manual earn (positive delta) or spend (negative delta)."""
    with store_guard():
        entry = adjust_mileage(
            account_id,
            body.delta,
            description=body.description,
            idempotency_key=body.idempotency_key,
        )
    return MileageEntryEnvelope(data=MileageEntryView.from_entry(entry))


# ---------------------------------------------------------------------------
# Email Log Router
# ---------------------------------------------------------------------------
email_log_router = APIRouter(prefix="/email-logs", tags=["email-logs"])


@email_log_router.get("", response_model=NotificationLogsEnvelope)
async def list_email_logs(
    order_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=100),
) -> NotificationLogsEnvelope:
    """Logs for one order, or across every order when ``order_id`` is omitted."""
    repository = current_domain.repository_for(NotificationLog)
    with store_guard():
        logs = repository.for_order(order_id, limit=limit) if order_id else repository.recent(limit=limit)
    return NotificationLogsEnvelope(data=[NotificationLogView.from_log(log) for log in logs])


routers = [order_router, shipment_router, mileage_router, email_log_router]
