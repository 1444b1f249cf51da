"""Order and mileage load test scenarios.

Four stateful SequentialTaskSet journeys: the fulfillment happy path that
ends in a reward, a cancellation that refunds redeemed points, a return
that reverses the reward, and an auto-ship journey drained by the sweep.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    adjustment_data,
    cancellation_reason,
    customer_id,
    order_data,
    return_reason,
)
from loadtests.helpers.response import extract_data, extract_error_detail
from loadtests.helpers.state import MileageState, OrderState


class _OrderJourney(SequentialTaskSet):
    """Shared helpers for journeys that walk one order."""

    def place(self, **kwargs):
        with self.client.post(
            "/orders",
            json=order_data(customer=self.state.customer_id, **kwargs),
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = extract_data(resp)["order_id"]
            else:
                resp.failure(f"Place order failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    def transition(self, target, reason=None, actor="admin", expected=None):
        body = {"target_status": target, "reason": reason}
        if expected:
            body["expected_status"] = expected
        with self.client.post(
            f"/orders/{self.state.order_id}/transition",
            json=body,
            headers={"X-Actor": actor},
            catch_response=True,
            name=f"POST /orders/{{id}}/transition [{target}]",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = target
            else:
                resp.failure(f"Transition to {target} failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    def check_balance(self, expected):
        with self.client.get(
            f"/mileage/{self.state.customer_id}",
            catch_response=True,
            name="GET /mileage/{account}",
        ) as resp:
            data = extract_data(resp)
            if data is None:
                resp.failure(f"Mileage read failed: {resp.status_code} — {extract_error_detail(resp)}")
            elif data["balance"] != expected:
                resp.failure(f"Balance {data['balance']} != expected {expected}")


class OrderFulfillmentJourney(_OrderJourney):
    """Place -> Pay -> Ship -> Complete -> check the reward landed."""

    def on_start(self):
        self.state = OrderState(customer_id=customer_id())

    @task
    def place_order(self):
        self.place()

    @task
    def confirm_payment(self):
        self.transition("pending_shipment", actor="system")

    @task
    def ship(self):
        self.transition("shipped", expected="pending_shipment")

    @task
    def complete(self):
        self.transition("completed", expected="shipped", actor="system")

    @task
    def retry_complete(self):
        # A retry must be refused without a second reward
        with self.client.post(
            f"/orders/{self.state.order_id}/transition",
            json={"target_status": "completed"},
            catch_response=True,
            name="POST /orders/{id}/transition [retry]",
        ) as resp:
            if resp.status_code == 409:
                resp.success()
            else:
                resp.failure(f"Retry was not rejected: {resp.status_code}")

    @task
    def done(self):
        self.interrupt()


class RedeemAndCancelJourney(_OrderJourney):
    """Grant points -> Place with redemption -> Cancel -> balance restored."""

    def on_start(self):
        self.state = OrderState(customer_id=customer_id())
        self.mileage = MileageState(customer_id=self.state.customer_id)

    @task
    def grant_points(self):
        payload = adjustment_data(delta=5000)
        with self.client.post(
            f"/mileage/{self.mileage.customer_id}/adjustments",
            json=payload,
            catch_response=True,
            name="POST /mileage/{account}/adjustments",
        ) as resp:
            if resp.status_code == 201:
                self.mileage.expected_balance += payload["delta"]
                self.mileage.idempotency_keys.append(payload["idempotency_key"])
            else:
                resp.failure(f"Grant failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def place_with_redemption(self):
        self.state.redeemed_points = random.randint(1, 5) * 100
        self.place(redeem_points=self.state.redeemed_points)

    @task
    def cancel(self):
        self.transition("cancelled", reason=cancellation_reason(), actor="customer")

    @task
    def verify_refund(self):
        self.check_balance(self.mileage.expected_balance)

    @task
    def done(self):
        self.interrupt()


class ReturnJourney(_OrderJourney):
    """Walk to completed, return, and expect the reward reversed."""

    def on_start(self):
        self.state = OrderState(customer_id=customer_id())

    @task
    def place_order(self):
        self.place()

    @task
    def walk_to_completed(self):
        for target in ("pending_shipment", "shipped", "completed"):
            self.transition(target)

    @task
    def accept_return(self):
        self.transition("returned", reason=return_reason())

    @task
    def verify_reversal(self):
        self.check_balance(0)

    @task
    def done(self):
        self.interrupt()


class AutoShipJourney(_OrderJourney):
    """Place with auto-ship -> Pay -> sweep ships it."""

    def on_start(self):
        self.state = OrderState(customer_id=customer_id())

    @task
    def place_order(self):
        self.place(auto_ship=True)

    @task
    def confirm_payment(self):
        self.transition("pending_shipment", actor="system")

    @task
    def drain(self):
        with self.client.post(
            "/shipments/drain",
            catch_response=True,
            name="POST /shipments/drain",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Drain failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class CommerceUser(HttpUser):
    """Locust user simulating order and mileage traffic.

    Weighted distribution:
    - 40% Fulfillment happy path
    - 25% Redeem and cancel
    - 20% Return after completion
    - 15% Auto-ship drain
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        OrderFulfillmentJourney: 8,
        RedeemAndCancelJourney: 5,
        ReturnJourney: 4,
        AutoShipJourney: 3,
    }
