"""Scheduled sweeps — auto-ship dispatch, bulk dispatch and timeout completion.

These run outside command handlers: every order they touch is moved by its
own TransitionOrder command, so one failing order never rolls back the
others, and re-running a sweep only picks up orders still eligible.
"""

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from commerce.errors import CommerceError, InvalidTransition, NotFound
from commerce.order.order import Actor, Order, OrderStatus
from commerce.order.transition import transition_order
from commerce.policy import get_policy

logger = structlog.get_logger(__name__)


def drain_auto_shippable() -> Iterator[str]:
    """Ship every pending order with auto-ship on, yielding each shipped order id.

    Eligibility is read once up front; the sequence is lazy, one transition
    per item consumed.
    """
    eligible = [str(order.id) for order in current_domain.repository_for(Order).auto_shippable()]
    logger.info("Auto-ship sweep started", eligible=len(eligible))

    for order_id in eligible:
        try:
            transition_order(
                order_id,
                OrderStatus.SHIPPED.value,
                expected_status=OrderStatus.PENDING_SHIPMENT.value,
                reason="auto-ship",
                actor=Actor.SYSTEM.value,
            )
        except InvalidTransition as exc:
            # Shipped or cancelled by someone else since the sweep started
            logger.info("Order skipped by auto-ship sweep", order_id=order_id, error=exc.message)
            continue
        except CommerceError as exc:
            logger.warning("Auto-ship dispatch failed", order_id=order_id, kind=exc.kind, error=exc.message)
            continue
        yield order_id


def dispatch_orders(order_ids: list[str], actor: str = Actor.ADMIN.value) -> dict:
    """Manually ship the given pending orders.

    Returns per-order results and success/failure counts.
    """
    results = []
    for order_id in dict.fromkeys(order_ids):
        try:
            transition_order(
                order_id,
                OrderStatus.SHIPPED.value,
                expected_status=OrderStatus.PENDING_SHIPMENT.value,
                actor=actor,
            )
        except NotFound as exc:
            results.append({"id": order_id, "status": "not_found", "error": exc.message})
        except CommerceError as exc:
            results.append({"id": order_id, "status": "failed", "error": exc.message})
        except ValidationError as exc:
            results.append({"id": order_id, "status": "failed", "error": str(exc.messages)})
        else:
            results.append({"id": order_id, "status": "shipped"})

    success_count = sum(1 for r in results if r["status"] == "shipped")
    logger.info("Bulk dispatch finished", success=success_count, failed=len(results) - success_count)
    return {
        "results": results,
        "success_count": success_count,
        "failed_count": len(results) - success_count,
    }


def complete_overdue_orders(now: datetime | None = None) -> list[str]:
    """Complete shipped orders older than the configured window. Returns completed ids."""
    now = now or datetime.now(UTC)
    cutoff = now - timedelta(days=get_policy().auto_complete_after_days)
    overdue = current_domain.repository_for(Order).shipped_before(cutoff)

    completed = []
    for order in overdue:
        order_id = str(order.id)
        try:
            transition_order(
                order_id,
                OrderStatus.COMPLETED.value,
                expected_status=OrderStatus.SHIPPED.value,
                reason="auto-completed",
                actor=Actor.SYSTEM.value,
            )
        except CommerceError as exc:
            logger.warning("Auto-completion failed", order_id=order_id, kind=exc.kind, error=exc.message)
            continue
        completed.append(order_id)

    logger.info("Overdue orders completed", count=len(completed), cutoff=cutoff.isoformat())
    return completed


def run_sweep(now: datetime | None = None) -> dict:
    """One pass of the periodic sweep."""
    return {
        "shipped": list(drain_auto_shippable()),
        "completed": complete_overdue_orders(now),
    }
