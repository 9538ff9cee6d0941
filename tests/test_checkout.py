"""
Integration Tests: Checkout handoff

The cart must only be cleared once the processor reports the session paid;
every failure before that leaves it untouched.
"""

import pytest

from conftest import sign_in_as


SHIPPING = {
    "email": "shopper@parts.test",
    "first_name": "Sam",
    "last_name": "Shopper",
    "address": "12 Piston Road",
    "city": "Detroit",
    "state": "MI",
    "postal_code": "48201",
    "phone": "3135550100",
}


@pytest.fixture
def shopper(login, users, products):
    client = login(users["customer"])
    client.post("/api/cart/items", json={"product_id": products["pads"]["id"], "quantity": 2})
    client.post("/api/cart/items", json={"product_id": products["filter"]["id"], "quantity": 1})
    return client


def cart_of(client):
    return client.get("/api/cart").get_json()["cart"]


class TestStartCheckout:
    def test_requires_sign_in(self, client, products):
        client.post("/api/cart/items", json={"product_id": products["pads"]["id"]})
        resp = client.post("/api/checkout", json=SHIPPING)
        assert resp.status_code == 401
        assert resp.get_json()["login_url"] == "/auth/login"

    def test_empty_cart_rejected(self, login, users):
        client = login(users["customer"])
        resp = client.post("/api/checkout", json=SHIPPING)
        assert resp.status_code == 400
        assert "cart" in resp.get_json()["errors"]

    def test_invalid_shipping_reports_fields(self, shopper):
        resp = shopper.post("/api/checkout", json={**SHIPPING, "postal_code": "12", "phone": "555"})
        assert resp.status_code == 400
        assert set(resp.get_json()["errors"]) == {"postal_code", "phone"}

    def test_creates_pending_order_and_keeps_cart(self, shopper, components, gateway, users):
        resp = shopper.post("/api/checkout", json=SHIPPING)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["checkout_url"] == "https://checkout.test/cs_test_1"

        order = components["orders"].get_order(body["order_id"])
        assert order["status"] == "pending"
        assert order["payment_status"] == "unpaid"
        assert order["total_amount"] == 109.48
        assert order["user_id"] == users["customer"]["id"]
        assert gateway.sessions["cs_test_1"]["order_id"] == body["order_id"]
        assert cart_of(shopper)["line_count"] == 2

    def test_gateway_failure_leaves_cart_intact(self, shopper, components, gateway):
        gateway.fail_create = True
        resp = shopper.post("/api/checkout", json=SHIPPING)
        assert resp.status_code == 502
        assert cart_of(shopper)["line_count"] == 2
        orders = components["orders"].list_orders()
        assert [o["status"] for o in orders] == ["cancelled"]


class TestCompleteCheckout:
    def test_paid_session_marks_order_and_clears_cart(self, shopper, gateway):
        order_id = shopper.post("/api/checkout", json=SHIPPING).get_json()["order_id"]
        gateway.paid.add("cs_test_1")

        resp = shopper.get(f"/api/checkout/success?order_id={order_id}&session_id=cs_test_1")
        assert resp.status_code == 200
        order = resp.get_json()["order"]
        assert order["payment_status"] == "paid"
        assert order["paid_at"] is not None
        assert cart_of(shopper)["state"] == "empty"

    def test_revisiting_success_keeps_new_cart(self, shopper, gateway, products):
        order_id = shopper.post("/api/checkout", json=SHIPPING).get_json()["order_id"]
        gateway.paid.add("cs_test_1")
        shopper.get(f"/api/checkout/success?order_id={order_id}&session_id=cs_test_1")

        shopper.post("/api/cart/items", json={"product_id": products["pads"]["id"], "quantity": 1})
        resp = shopper.get(f"/api/checkout/success?order_id={order_id}")
        assert resp.status_code == 200
        assert resp.get_json()["order"]["payment_status"] == "paid"
        assert cart_of(shopper)["line_count"] == 1

    def test_unpaid_session_keeps_cart(self, shopper):
        order_id = shopper.post("/api/checkout", json=SHIPPING).get_json()["order_id"]
        resp = shopper.get(f"/api/checkout/success?order_id={order_id}&session_id=cs_test_1")
        assert resp.status_code == 402
        assert cart_of(shopper)["line_count"] == 2

    def test_mismatched_session_rejected(self, shopper, gateway):
        order_id = shopper.post("/api/checkout", json=SHIPPING).get_json()["order_id"]
        gateway.paid.add("cs_test_9")
        resp = shopper.get(f"/api/checkout/success?order_id={order_id}&session_id=cs_test_9")
        assert resp.status_code == 400
        assert cart_of(shopper)["line_count"] == 2

    def test_other_customers_order_is_hidden(self, shopper, components):
        order_id = shopper.post("/api/checkout", json=SHIPPING).get_json()["order_id"]
        other = components["users"].register_customer({"email": "other@parts.test", "password": "secret123"})
        sign_in_as(shopper, other)
        resp = shopper.get(f"/api/checkout/success?order_id={order_id}&session_id=cs_test_1")
        assert resp.status_code == 404

    def test_cancel_marks_order_cancelled(self, shopper, components):
        order_id = shopper.post("/api/checkout", json=SHIPPING).get_json()["order_id"]
        resp = shopper.get(f"/api/checkout/cancel?order_id={order_id}")
        assert resp.status_code == 200
        assert components["orders"].get_order(order_id)["status"] == "cancelled"
        assert cart_of(shopper)["line_count"] == 2

    def test_order_history_lists_own_orders(self, shopper):
        shopper.post("/api/checkout", json=SHIPPING)
        orders = shopper.get("/api/orders").get_json()["orders"]
        assert len(orders) == 1
        assert orders[0]["items"][0]["name"] == "Ceramic Brake Pads"
