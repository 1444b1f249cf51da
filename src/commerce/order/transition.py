"""TransitionOrder command and handler — the single write path for order status."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.order.order import Actor, Order, parse_status
from commerce.order.state_machine import OrderStateMachine


@commerce.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    target_status = String(required=True, max_length=50)
    expected_status = String(max_length=50)
    reason = String(max_length=500)
    actor = String(max_length=50, choices=Actor, default=Actor.SYSTEM.value)


@commerce.command_handler(part_of=Order)
class TransitionOrderHandler:
    @handle(TransitionOrder)
    def transition_order(self, command):
        """Move the order and return its new status."""
        target = parse_status(command.target_status, "target_status")
        expected = parse_status(command.expected_status, "expected_status") if command.expected_status else None
        order = OrderStateMachine().apply(
            command.order_id,
            target,
            expected=expected,
            reason=command.reason,
            actor=command.actor,
        )
        return order.status


def transition_order(
    order_id: str,
    target_status: str,
    expected_status: str | None = None,
    reason: str | None = None,
    actor: str = Actor.SYSTEM.value,
) -> str:
    return current_domain.process(
        TransitionOrder(
            order_id=order_id,
            target_status=target_status,
            expected_status=expected_status,
            reason=reason,
            actor=actor,
        ),
        asynchronous=False,
    )
