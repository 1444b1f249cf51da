"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the API's Pydantic request
schemas and the order aggregate's validation (non-empty basket, positive
quantities, non-negative integer prices).
"""

import random
import uuid

from faker import Faker

fake = Faker()


def customer_id() -> str:
    """Generate unique customer ids like 'cust-lt-a1b2c3d4'."""
    return f"cust-lt-{uuid.uuid4().hex[:8]}"


def order_item() -> dict:
    """Generate an OrderItemRequest with a price in minor units."""
    return {
        "product_id": f"prod-{fake.bothify('??##').lower()}",
        "quantity": random.randint(1, 4),
        "unit_price": random.randint(5, 500) * 100,
    }


def order_data(customer: str | None = None, redeem_points: int = 0, auto_ship: bool = False) -> dict:
    """Generate a PlaceOrderRequest payload with 1-4 line items."""
    return {
        "customer_id": customer or customer_id(),
        "items": [order_item() for _ in range(random.randint(1, 4))],
        "redeem_points": redeem_points,
        "auto_ship_enabled": auto_ship,
    }


def cancellation_reason() -> str:
    return random.choice(
        [
            "Changed my mind",
            "Found a better price",
            "Ordered by mistake",
            "Delivery too slow",
        ]
    )


def return_reason() -> str:
    return random.choice(
        [
            "Item damaged in transit",
            "Wrong size",
            "Not as described",
        ]
    )


def adjustment_data(delta: int | None = None) -> dict:
    """Generate a MileageAdjustmentRequest with a fresh idempotency key."""
    return {
        "delta": delta if delta is not None else random.randint(1, 20) * 100,
        "description": fake.sentence(nb_words=4)[:200],
        "idempotency_key": f"lt-{uuid.uuid4().hex}",
    }
