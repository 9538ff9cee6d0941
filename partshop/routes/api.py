"""Cart and checkout API routes."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request, session

from ..common.services.identity import current_principal_id


api_bp = Blueprint("partshop_api", __name__, url_prefix="/api")


def _components() -> Dict[str, Any]:
    return current_app.extensions["partshop_components"]


def _sign_in_required():
    return jsonify({"status": "error", "message": "Please sign in to check out", "login_url": "/auth/login"}), 401


@api_bp.get("/cart")
def get_cart():
    return jsonify({"status": "ok", "cart": _components()["carts"].get_cart(session)})


@api_bp.post("/cart/items")
def add_cart_item():
    payload = request.get_json(silent=True) or {}
    product_id = str(payload.get("product_id", "")).strip()
    if not product_id:
        return jsonify({"status": "error", "message": "Missing product_id"}), 400
    cart = _components()["carts"].add_item(session, product_id=product_id, quantity=payload.get("quantity"))
    return jsonify({"status": "ok", "cart": cart})


@api_bp.patch("/cart/items/<product_id>")
def update_cart_item(product_id: str):
    payload = request.get_json(silent=True) or {}
    if "quantity" not in payload:
        return jsonify({"status": "error", "message": "Missing quantity"}), 400
    cart = _components()["carts"].update_item(session, product_id=product_id, quantity=payload["quantity"])
    return jsonify({"status": "ok", "cart": cart})


@api_bp.delete("/cart/items/<product_id>")
def remove_cart_item(product_id: str):
    return jsonify({"status": "ok", "cart": _components()["carts"].remove_item(session, product_id=product_id)})


@api_bp.delete("/cart")
def clear_cart():
    return jsonify({"status": "ok", "cart": _components()["carts"].clear(session)})


@api_bp.post("/checkout")
def start_checkout():
    principal_id = current_principal_id(session)
    if not principal_id:
        return _sign_in_required()
    payload = request.get_json(silent=True) or {}
    result = _components()["checkout"].start(session, user_id=principal_id, payload=payload)
    return jsonify(result)


@api_bp.get("/checkout/success")
def checkout_success():
    principal_id = current_principal_id(session)
    if not principal_id:
        return _sign_in_required()
    order_id = request.args.get("order_id", "").strip()
    if not order_id:
        return jsonify({"status": "error", "message": "Missing order_id"}), 400
    result = _components()["checkout"].complete(
        session,
        user_id=principal_id,
        order_id=order_id,
        session_id=request.args.get("session_id", "").strip(),
    )
    if result["status"] != "paid":
        return jsonify({"status": "error", "message": "Payment has not been confirmed", "order": result["order"]}), 402
    return jsonify({"status": "ok", "order": result["order"]})


@api_bp.get("/checkout/cancel")
def checkout_cancel():
    principal_id = current_principal_id(session)
    if not principal_id:
        return _sign_in_required()
    order_id = request.args.get("order_id", "").strip()
    if not order_id:
        return jsonify({"status": "error", "message": "Missing order_id"}), 400
    result = _components()["checkout"].cancel(user_id=principal_id, order_id=order_id)
    return jsonify({"status": "ok", "order": result["order"]})
