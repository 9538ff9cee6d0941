"""
Stripe hosted checkout integration.
Based on https://docs.stripe.com/api/checkout/sessions
Authentication uses the secret key as HTTP basic username.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

import requests

from ..errors import RemoteOperationError


class StripeCheckoutGateway:
    """Creates hosted checkout sessions and confirms their payment state."""

    API_BASE_URL = "https://api.stripe.com/v1"

    def __init__(
        self,
        secret_key: Optional[str],
        success_url: str,
        cancel_url: str,
        currency: str = "USD",
        timeout: int = 30,
    ) -> None:
        self.secret_key = secret_key
        self.success_url = success_url
        self.cancel_url = cancel_url
        self.currency = currency.lower()
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def _require_key(self) -> str:
        if not self.secret_key:
            raise RemoteOperationError("payment", "Payment processor is not configured")
        return self.secret_key

    @staticmethod
    def _to_minor_units(amount) -> int:
        return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def _form_payload(self, order_id: str, items: List[Dict[str, Any]], customer_email: Optional[str]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "mode": "payment",
            "client_reference_id": order_id,
            "metadata[order_id]": order_id,
            "success_url": f"{self.success_url}?order_id={order_id}&session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{self.cancel_url}?order_id={order_id}",
        }
        if customer_email:
            payload["customer_email"] = customer_email
        for i, item in enumerate(items):
            prefix = f"line_items[{i}]"
            payload[f"{prefix}[quantity]"] = int(item["quantity"])
            payload[f"{prefix}[price_data][currency]"] = self.currency
            payload[f"{prefix}[price_data][unit_amount]"] = self._to_minor_units(item["unit_price"])
            payload[f"{prefix}[price_data][product_data][name]"] = item.get("name") or item["product_id"]
            payload[f"{prefix}[price_data][product_data][metadata][product_id]"] = item["product_id"]
        return payload

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.API_BASE_URL}{path}"
        try:
            response = requests.request(method, url, auth=(self._require_key(), ""), timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as exc:
            self.logger.warning("Stripe request timed out: %s %s", method, path)
            raise RemoteOperationError("payment", "Payment processor timed out") from exc
        except requests.exceptions.RequestException as exc:
            self.logger.warning("Stripe request failed: %s %s: %s", method, path, exc)
            raise RemoteOperationError("payment", "Payment processor is unreachable") from exc

        if response.status_code != 200:
            error_msg = f"Payment processor error: {response.status_code}"
            try:
                error_msg = response.json().get("error", {}).get("message") or error_msg
            except ValueError:
                self.logger.debug("Non-JSON Stripe error body: %s", response.text[:200])
            self.logger.warning("Stripe API error on %s %s: %s", method, path, error_msg)
            raise RemoteOperationError("payment", error_msg)
        return response.json()

    def create_session(self, *, order_id: str, items: List[Dict[str, Any]], customer_email: Optional[str] = None) -> Dict[str, str]:
        data = self._request("POST", "/checkout/sessions", data=self._form_payload(order_id, items, customer_email))
        self.logger.info("Checkout session %s created for order %s", data.get("id"), order_id)
        return {"id": data["id"], "url": data["url"]}

    def is_paid(self, session_id: str) -> bool:
        data = self._request("GET", f"/checkout/sessions/{session_id}")
        return data.get("payment_status") == "paid"
