"""Back-office routes.

Every request under ``/admin`` passes the route guard first: the signed-in
principal's role is looked up again and checked against the screen's
allow-list. Mutations additionally check the screen's action table.
"""

from __future__ import annotations

import json
from typing import Any, Dict

from flask import Blueprint, Response, current_app, g, jsonify, redirect, request, session

from ..common.config import ALLOWED_HOT_KEYS, refresh_non_sensitive, requires_restart
from ..common.errors import AuthorizationDenied, AuthorizationIndeterminate, ValidationError
from ..common.services.access import (
    ROUTE_CAPABILITIES,
    assignable_roles,
    can_perform_action,
    default_route_for,
    navigation_for,
)
from ..common.services.identity import current_principal_id
from ..common.services.logging import log_event
from ..common.services.role_resolver import ResolutionState, RouteGuard, route_key_for
from ..common.utils.pagination import parse_int_arg
from ..common.utils.validators import FormValidator
from ..config import DEFAULT_SETTINGS


admin_bp = Blueprint("partshop_admin", __name__, url_prefix="/admin")

# locations every privileged role may enter
SHELL_KEYS = {None, "navigation"}
SCREEN_KEYS = {key for key, _, _ in ROUTE_CAPABILITIES}
SETTINGS_KEYS = set(DEFAULT_SETTINGS) | {"STORE_BASE_URL"}


def _components() -> Dict[str, Any]:
    return current_app.extensions["partshop_components"]


def _config():
    return current_app.config["SHOP_CONFIG"]


def _require_action(screen_key: str, action_key: str) -> None:
    if not can_perform_action(g.role, screen_key, action_key):
        raise AuthorizationDenied(g.role.value if g.role else None, screen_key, action_key)


def _payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or request.form.to_dict()


def _run_guard():
    route_key = route_key_for(request.path)
    guard = RouteGuard(None if route_key in SHELL_KEYS else route_key)
    principal_id = current_principal_id(session)
    guard.run(_components()["role_resolver"], principal_id, request.path)

    if guard.resolution.state is ResolutionState.FAILED:
        raise AuthorizationIndeterminate(principal_id, guard.resolution.error or "lookup failed", guard.route_key)
    if guard.redirect_to:
        log_event(
            "warning",
            "auth.denied",
            principal_id=principal_id,
            role=guard.role.value if guard.role else None,
            route=guard.route_key,
            path=request.path,
        )
        return redirect(guard.redirect_to)

    g.principal_id = principal_id
    g.role = guard.role
    return None


@admin_bp.before_request
def guard_admin_routes():
    return _run_guard()


@admin_bp.before_app_request
def guard_unmatched_admin_paths():
    # URLs that fail routing skip blueprint hooks; screen URLs still get the guard
    if request.endpoint is not None or route_key_for(request.path) not in SCREEN_KEYS:
        return None
    return _run_guard()


@admin_bp.get("/")
def dashboard():
    return redirect(f"/admin/{default_route_for(g.role)}")


@admin_bp.get("/navigation")
def navigation():
    return jsonify({
        "status": "ok",
        "role": g.role.value,
        "default_route": default_route_for(g.role),
        "navigation": navigation_for(g.role),
    })


# --- products -----------------------------------------------------------


@admin_bp.get("/products")
def list_products():
    result = _components()["catalog"].list_products(
        query=request.args.get("q", "").strip() or None,
        page=parse_int_arg(request.args.get("page"), 1),
        page_size=parse_int_arg(request.args.get("page_size"), 50),
    )
    return jsonify({"status": "ok", **result})


@admin_bp.post("/products")
def create_product():
    _require_action("products", "create")
    product = _components()["catalog"].create_product(_payload())
    log_event("info", "product.saved", product_id=product["id"], created=True, actor=g.principal_id)
    return jsonify({"status": "ok", "product": product}), 201


@admin_bp.put("/products/<product_id>")
def update_product(product_id: str):
    _require_action("products", "edit")
    product = _components()["catalog"].update_product(product_id, _payload())
    log_event("info", "product.saved", product_id=product_id, created=False, actor=g.principal_id)
    return jsonify({"status": "ok", "product": product})


@admin_bp.delete("/products/<product_id>")
def delete_product(product_id: str):
    _require_action("products", "delete")
    _components()["catalog"].delete_product(product_id)
    return jsonify({"status": "ok"})


@admin_bp.get("/products/alerts")
def inventory_alerts():
    threshold = parse_int_arg(request.args.get("threshold"), _config().app.low_stock_threshold)
    items = _components()["catalog"].low_stock(threshold)
    return jsonify({"status": "ok", "threshold": threshold, "items": items})


@admin_bp.post("/products/import")
def import_products():
    _require_action("products", "import")
    upload = request.files.get("file")
    if upload is not None:
        content = upload.read().decode("utf-8-sig")
    else:
        content = request.get_data(as_text=True)
    if not content.strip():
        return jsonify({"status": "error", "message": "No CSV content provided"}), 400
    return jsonify(_components()["bulk"].import_csv(content))


@admin_bp.get("/products/export")
def export_products():
    _require_action("products", "export")
    bulk = _components()["bulk"]
    return Response(
        bulk.export_csv(),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={bulk.export_filename()}"},
    )


# --- categories ---------------------------------------------------------


@admin_bp.get("/categories")
def list_categories():
    return jsonify({"status": "ok", "categories": _components()["catalog"].list_categories()})


@admin_bp.post("/categories")
def create_category():
    _require_action("categories", "create")
    category = _components()["catalog"].save_category(_payload())
    return jsonify({"status": "ok", "category": category}), 201


@admin_bp.put("/categories/<category_id>")
def update_category(category_id: str):
    _require_action("categories", "edit")
    category = _components()["catalog"].save_category(_payload(), category_id=category_id)
    return jsonify({"status": "ok", "category": category})


@admin_bp.delete("/categories/<category_id>")
def delete_category(category_id: str):
    _require_action("categories", "delete")
    _components()["catalog"].delete_category(category_id)
    return jsonify({"status": "ok"})


# --- orders & customers -------------------------------------------------


@admin_bp.get("/orders")
def list_orders():
    orders = _components()["orders"].list_orders(
        status=request.args.get("status", "").strip() or None,
        search=request.args.get("q", "").strip() or None,
    )
    return jsonify({"status": "ok", "orders": orders})


@admin_bp.get("/orders/<order_id>/details")
def order_detail(order_id: str):
    return jsonify({"status": "ok", "order": _components()["orders"].get_order(order_id)})


@admin_bp.patch("/orders/<order_id>/status")
def update_order_status(order_id: str):
    _require_action("orders", "edit")
    status = str(_payload().get("status", "")).strip()
    return jsonify({"status": "ok", "order": _components()["orders"].update_status(order_id, status)})


@admin_bp.get("/customers")
def list_customers():
    customers = _components()["users"].list_customers(request.args.get("q", "").strip() or None)
    return jsonify({"status": "ok", "customers": customers})


# --- team ---------------------------------------------------------------


@admin_bp.get("/team")
def list_team():
    members = _components()["users"].list_team(request.args.get("q", "").strip() or None)
    return jsonify({
        "status": "ok",
        "members": members,
        "assignable_roles": [r.value for r in assignable_roles(g.role)],
    })


@admin_bp.post("/team")
def create_team_member():
    member = _components()["users"].save_team_member(g.role, _payload())
    return jsonify({"status": "ok", "member": member}), 201


@admin_bp.put("/team/<member_id>")
def update_team_member(member_id: str):
    member = _components()["users"].save_team_member(g.role, _payload(), member_id=member_id)
    return jsonify({"status": "ok", "member": member})


@admin_bp.delete("/team/<member_id>")
def delete_team_member(member_id: str):
    _components()["users"].delete_team_member(g.role, member_id)
    log_event("info", "team.deleted", user_id=member_id, actor=g.principal_id)
    return jsonify({"status": "ok"})


# --- leads --------------------------------------------------------------


@admin_bp.get("/leads")
def list_leads():
    leads = _components()["leads"].list_leads(
        actor_id=g.principal_id,
        actor_role=g.role,
        status=request.args.get("status", "").strip() or None,
        search=request.args.get("q", "").strip() or None,
    )
    return jsonify({"status": "ok", "leads": leads})


@admin_bp.get("/leads/assignees")
def lead_assignees():
    return jsonify({"status": "ok", "assignees": _components()["users"].list_lead_assignees(g.role)})


@admin_bp.post("/leads")
def create_lead():
    lead = _components()["leads"].create_lead(actor_id=g.principal_id, actor_role=g.role, payload=_payload())
    return jsonify({"status": "ok", "lead": lead}), 201


@admin_bp.put("/leads/<lead_id>")
def update_lead(lead_id: str):
    lead = _components()["leads"].update_lead(
        actor_id=g.principal_id, actor_role=g.role, lead_id=lead_id, payload=_payload()
    )
    return jsonify({"status": "ok", "lead": lead})


@admin_bp.post("/leads/<lead_id>/assign")
def assign_lead(lead_id: str):
    assignee_id = str(_payload().get("assigned_to", "")).strip()
    if not assignee_id:
        raise ValidationError({"assigned_to": "Invalid user ID"})
    lead = _components()["leads"].assign_lead(
        actor_id=g.principal_id, actor_role=g.role, lead_id=lead_id, assignee_id=assignee_id
    )
    return jsonify({"status": "ok", "lead": lead})


@admin_bp.patch("/leads/<lead_id>/status")
def update_lead_status(lead_id: str):
    lead = _components()["leads"].update_status(
        actor_id=g.principal_id,
        actor_role=g.role,
        lead_id=lead_id,
        status=str(_payload().get("status", "")).strip(),
    )
    return jsonify({"status": "ok", "lead": lead})


@admin_bp.delete("/leads/<lead_id>")
def delete_lead(lead_id: str):
    _components()["leads"].delete_lead(actor_role=g.role, lead_id=lead_id)
    log_event("info", "lead.deleted", lead_id=lead_id, actor=g.principal_id)
    return jsonify({"status": "ok"})


# --- analytics & settings -----------------------------------------------


@admin_bp.get("/analytics")
def analytics():
    timeframe = request.args.get("timeframe", "30d").strip()
    return jsonify({"status": "ok", "summary": _components()["analytics"].summary(timeframe)})


def _read_settings() -> Dict[str, Any]:
    settings_file = _config().settings_file
    if not settings_file.exists():
        return dict(DEFAULT_SETTINGS)
    try:
        stored = json.loads(settings_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log_event("error", "settings.read_failed", error=str(exc))
        return dict(DEFAULT_SETTINGS)
    return {**DEFAULT_SETTINGS, **(stored if isinstance(stored, dict) else {})}


def _validate_settings(incoming: Dict[str, Any]) -> Dict[str, Any]:
    v = FormValidator(incoming)
    if "SUPPORT_EMAIL" in incoming:
        v.require_email("SUPPORT_EMAIL", "Support email must be a valid address")
    if "NOTIFICATIONS" in incoming:
        toggles = incoming["NOTIFICATIONS"]
        known = DEFAULT_SETTINGS["NOTIFICATIONS"]
        if not isinstance(toggles, dict) or any(k not in known or not isinstance(val, bool) for k, val in toggles.items()):
            v.fail("NOTIFICATIONS", f"Notifications must map {', '.join(known)} to true or false")
    v.raise_if_errors()
    return incoming


@admin_bp.get("/settings")
def get_settings():
    return jsonify({"status": "ok", "settings": _read_settings()})


@admin_bp.post("/settings")
def update_settings():
    _require_action("settings", "edit")
    payload = request.get_json(silent=True) or {}
    incoming = {k: v for k, v in (payload.get("settings") or {}).items() if k in SETTINGS_KEYS}
    if not incoming:
        return jsonify({"status": "error", "message": "No settings provided"}), 400
    _validate_settings(incoming)

    config = _config()
    try:
        config.app = refresh_non_sensitive(incoming, config.app)
    except ValueError as exc:
        raise ValidationError({"settings": str(exc)})

    current = _read_settings()
    changed = [k for k, v in incoming.items() if current.get(k) != v]
    if "NOTIFICATIONS" in incoming:
        incoming["NOTIFICATIONS"] = {**current["NOTIFICATIONS"], **incoming["NOTIFICATIONS"]}
    merged = {**current, **incoming}
    merged["CURRENCY"] = config.app.currency
    merged["LOW_STOCK_THRESHOLD"] = config.app.low_stock_threshold
    config.settings_file.write_text(json.dumps(merged, indent=2, ensure_ascii=False), encoding="utf-8")

    # hot keys take effect for new checkouts straight away
    _components()["checkout"].currency = config.app.currency
    _components()["payment_gateway"].currency = config.app.currency.lower()

    log_event("info", "settings.updated", keys=sorted(changed), actor=g.principal_id)
    return jsonify({
        "status": "ok",
        "settings": merged,
        "requires_restart": requires_restart(changed),
        "applied": sorted(k for k in changed if k in ALLOWED_HOT_KEYS),
    })
