"""
Unit Tests: Hosted checkout gateway

requests.request is patched; no traffic leaves the process.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from partshop.common.errors import RemoteOperationError
from partshop.common.services.payment_gateway import StripeCheckoutGateway

ITEMS = [{"product_id": "p1", "name": "Brake Pads", "quantity": 2, "unit_price": 49.99}]


@pytest.fixture
def gateway():
    return StripeCheckoutGateway(
        "sk_test_123",
        success_url="http://shop.test/api/checkout/success",
        cancel_url="http://shop.test/api/checkout/cancel",
    )


def response(status_code, body):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = body
    return resp


class TestCreateSession:
    def test_posts_line_items_in_minor_units(self, gateway):
        with patch("requests.request", return_value=response(200, {"id": "cs_1", "url": "https://pay/cs_1"})) as req:
            result = gateway.create_session(order_id="o1", items=ITEMS, customer_email="a@b.test")
        assert result == {"id": "cs_1", "url": "https://pay/cs_1"}
        method, url = req.call_args.args
        data = req.call_args.kwargs["data"]
        assert (method, url) == ("POST", "https://api.stripe.com/v1/checkout/sessions")
        assert req.call_args.kwargs["auth"] == ("sk_test_123", "")
        assert data["line_items[0][price_data][unit_amount]"] == 4999
        assert data["line_items[0][price_data][currency]"] == "usd"
        assert data["success_url"].startswith("http://shop.test/api/checkout/success?order_id=o1")

    def test_error_status_becomes_remote_error(self, gateway):
        body = {"error": {"message": "Invalid API Key provided"}}
        with patch("requests.request", return_value=response(401, body)):
            with pytest.raises(RemoteOperationError) as exc:
                gateway.create_session(order_id="o1", items=ITEMS)
        assert exc.value.message == "Invalid API Key provided"

    def test_timeout_becomes_remote_error(self, gateway):
        with patch("requests.request", side_effect=requests.exceptions.Timeout()):
            with pytest.raises(RemoteOperationError):
                gateway.create_session(order_id="o1", items=ITEMS)

    def test_missing_key_fails_without_request(self):
        unconfigured = StripeCheckoutGateway(None, "http://s", "http://c")
        with patch("requests.request") as req:
            with pytest.raises(RemoteOperationError):
                unconfigured.create_session(order_id="o1", items=ITEMS)
        req.assert_not_called()


class TestIsPaid:
    @pytest.mark.parametrize("status,expected", [("paid", True), ("unpaid", False)])
    def test_reads_payment_status(self, gateway, status, expected):
        with patch("requests.request", return_value=response(200, {"payment_status": status})):
            assert gateway.is_paid("cs_1") is expected
