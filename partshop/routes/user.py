"""Storefront catalogue and order history routes."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request, session

from ..common.services.identity import current_principal_id
from ..common.utils.pagination import parse_int_arg


user_bp = Blueprint("partshop_user", __name__, url_prefix="/api")


def _components() -> Dict[str, Any]:
    return current_app.extensions["partshop_components"]


@user_bp.get("/products")
def list_products():
    year = request.args.get("year")
    result = _components()["catalog"].list_products(
        query=request.args.get("q", "").strip() or None,
        make=request.args.get("make", "").strip() or None,
        model=request.args.get("model", "").strip() or None,
        year=parse_int_arg(year, 0) or None,
        category=request.args.get("category", "").strip() or None,
        page=parse_int_arg(request.args.get("page"), 1),
        page_size=parse_int_arg(request.args.get("page_size"), 20),
    )
    return jsonify({"status": "ok", **result})


@user_bp.get("/products/featured")
def featured_products():
    return jsonify({"status": "ok", "items": _components()["catalog"].featured_products()})


@user_bp.get("/products/<slug>")
def product_detail(slug: str):
    return jsonify({"status": "ok", "product": _components()["catalog"].get_product(slug)})


@user_bp.get("/categories")
def list_categories():
    return jsonify({"status": "ok", "categories": _components()["catalog"].list_categories()})


@user_bp.get("/orders")
def my_orders():
    principal_id = current_principal_id(session)
    if not principal_id:
        return jsonify({"status": "error", "message": "Please sign in", "login_url": "/auth/login"}), 401
    return jsonify({"status": "ok", "orders": _components()["orders"].list_for_user(principal_id)})


@user_bp.get("/store")
def store_info():
    config = current_app.config["SHOP_CONFIG"]
    return jsonify({
        "status": "ok",
        "currency": config.app.currency,
        "support_email": config.app.support_email,
        "payment_public_key": config.stripe_public_key,
    })
