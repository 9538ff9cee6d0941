"""Checkout handoff between the session cart and the hosted payment page.

The cart is only cleared once the payment processor confirms the session as
paid. Every failure before that point leaves the cart as it was so the
shopper can retry.
"""

from typing import Dict, MutableMapping

from ..errors import NotFoundError, RemoteOperationError, ValidationError
from ..utils.validators import FormValidator
from .cart_service import CartService
from .logging import log_event
from .order_service import OrderService


def validate_shipping(payload: Dict) -> Dict:
    v = FormValidator(payload)
    cleaned = {
        "email": v.require_email(),
        "first_name": v.require_text("first_name", 2, "First name is too short"),
        "last_name": v.require_text("last_name", 2, "Last name is too short"),
        "address": v.require_text("address", 5, "Address is too short"),
        "city": v.require_text("city", 2, "City is too short"),
        "state": v.require_text("state", 2, "State is too short"),
        "postal_code": v.require_text("postal_code", 5, "Postal code is too short"),
        "phone": v.require_text("phone", 10, "Phone number is too short"),
    }
    v.raise_if_errors()
    return cleaned


class CheckoutService:
    def __init__(self, cart_service: CartService, order_service: OrderService, gateway, currency: str = "USD"):
        self._carts = cart_service
        self._orders = order_service
        self._gateway = gateway
        self.currency = currency

    def start(self, store: MutableMapping, *, user_id: str, payload: Dict) -> Dict:
        address = validate_shipping(payload)
        cart = self._carts.load(store)
        if cart.is_empty:
            raise ValidationError({"cart": "Your cart is empty"})

        items = cart.snapshot()
        created = self._orders.create_order(
            user_id=user_id,
            items=items,
            total=cart.total,
            currency=self.currency,
            shipping_address=address,
        )
        order_id = created["order_id"]
        try:
            checkout = self._gateway.create_session(order_id=order_id, items=items, customer_email=address["email"])
        except RemoteOperationError as exc:
            log_event("error", "checkout.failed", order_id=order_id, error=exc.message)
            self._orders.mark_cancelled(order_id)
            raise
        self._orders.attach_payment_session(order_id, checkout["id"])
        return {"status": "ok", "order_id": order_id, "checkout_url": checkout["url"]}

    def complete(self, store: MutableMapping, *, user_id: str, order_id: str, session_id: str) -> Dict:
        order = self._owned_order(user_id, order_id)
        # a revisited success page must not clear a cart built since
        if order["payment_status"] == "paid":
            return {"status": "paid", "order": order}
        if not session_id or self._orders.payment_session_of(order_id) != session_id:
            raise ValidationError({"session_id": "Checkout session does not match this order"})
        if not self._gateway.is_paid(session_id):
            log_event("warning", "checkout.unpaid", order_id=order_id)
            return {"status": "unpaid", "order": order}
        order = self._orders.mark_paid(order_id)
        self._carts.clear(store)
        return {"status": "paid", "order": order}

    def cancel(self, *, user_id: str, order_id: str) -> Dict:
        self._owned_order(user_id, order_id)
        return {"status": "cancelled", "order": self._orders.mark_cancelled(order_id)}

    def _owned_order(self, user_id: str, order_id: str) -> Dict:
        order = self._orders.get_order(order_id)
        if order["user_id"] != user_id:
            raise NotFoundError("order", order_id)
        return order
