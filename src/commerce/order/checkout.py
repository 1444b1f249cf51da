"""PlaceOrder command and handler — checkout completion.

The order and its ``order-redeem`` ledger entry are written in the same
unit of work: a checkout that cannot pay its points never creates an order.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, Integer, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.mileage.entry import LedgerReason, idempotency_key_for
from commerce.mileage.ledger import MileageLedger
from commerce.order.order import Order
from commerce.policy import get_policy

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of {product_id, quantity, unit_price}
    redeem_points = Integer(default=0)
    auto_ship_enabled = Boolean(default=False)


@commerce.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        policy = get_policy()
        ledger = MileageLedger(policy)
        redeem = command.redeem_points or 0

        order = Order.place(
            customer_id=command.customer_id,
            items_data=json.loads(command.items),
            redeemed_points=redeem,
            auto_ship_enabled=bool(command.auto_ship_enabled),
        )

        if redeem > 0:
            if redeem < policy.min_redemption_points:
                raise ValidationError(
                    {"redeem_points": [f"At least {policy.min_redemption_points} points must be redeemed at once"]}
                )
            cap = policy.redemption_cap_for(order.total_amount)
            if redeem > cap:
                raise ValidationError({"redeem_points": [f"At most {cap} points can be redeemed on this order"]})
            ledger.check(str(order.customer_id), -redeem)

        current_domain.repository_for(Order).add(order)

        if redeem > 0:
            order_id = str(order.id)
            ledger.post(
                account_id=str(order.customer_id),
                delta=-redeem,
                reason=LedgerReason.ORDER_REDEEM,
                idempotency_key=idempotency_key_for(str(order.customer_id), LedgerReason.ORDER_REDEEM, order_id),
                reference_order_id=order_id,
                description=f"Redeemed at checkout for order {order_id}",
            )

        logger.info(
            "Order placed",
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            total_amount=order.total_amount,
            redeemed_points=redeem,
        )
        return str(order.id)
