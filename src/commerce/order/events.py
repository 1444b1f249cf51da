"""Order domain events — immutable facts about order lifecycle changes."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    """A customer completed checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of item dicts
    total_amount = Integer(required=True)
    redeemed_points = Integer(default=0)
    auto_ship_enabled = Boolean(default=False)
    placed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class PaymentConfirmed:
    """Payment cleared; the order now awaits shipment."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    confirmed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    shipped_by = String()
    shipped_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCompleted:
    """Delivery was confirmed, or the order completed by timeout."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    total_amount = Integer(required=True)
    completed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String()
    cancelled_by = String()
    redeemed_points = Integer(default=0)
    cancelled_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderReturned:
    """A return was accepted for a shipped or completed order."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String()
    returned_at = DateTime(required=True)


@commerce.event(part_of="Order")
class AutoShipToggled:
    __version__ = 1

    order_id = Identifier(required=True)
    enabled = Boolean(default=False)
    toggled_at = DateTime(required=True)
