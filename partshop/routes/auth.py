"""Sign-in routes for shoppers and back-office role families."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, redirect, request, session

from ..common.services.access import default_route_for, is_privileged
from ..common.services.identity import current_principal_id, sign_in, sign_out
from ..common.services.logging import log_event


auth_bp = Blueprint("partshop_auth", __name__)


def _components() -> Dict[str, Any]:
    return current_app.extensions["partshop_components"]


def _payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or request.form.to_dict()


def _safe_next(target: Optional[str]) -> Optional[str]:
    """Only local back-office locations are followed after sign-in."""
    if not target or not target.startswith("/admin") or target.startswith("//"):
        return None
    if target.rstrip("/").endswith(("/login", "/register")):
        return None
    return target


@auth_bp.post("/auth/register")
def register():
    user = _components()["users"].register_customer(_payload())
    sign_in(session, user)
    log_event("info", "auth.registered", user_id=user["id"])
    return jsonify({"status": "ok", "user": user}), 201


@auth_bp.post("/auth/login")
def login():
    payload = _payload()
    user = _components()["users"].authenticate(payload.get("email", ""), payload.get("password", ""))
    if user is None:
        log_event("warning", "auth.login_failed", email=payload.get("email", ""))
        return jsonify({"status": "error", "message": "Invalid email or password"}), 401
    sign_in(session, user)
    log_event("info", "auth.login", user_id=user["id"], role=user["role"])
    return jsonify({"status": "ok", "user": user})


@auth_bp.post("/auth/logout")
def logout():
    sign_out(session)
    return jsonify({"status": "ok"})


@auth_bp.get("/auth/me")
def whoami():
    principal_id = current_principal_id(session)
    if not principal_id:
        return jsonify({"status": "ok", "user": None})
    return jsonify({"status": "ok", "user": _components()["users"].get_profile(principal_id)})


@auth_bp.get("/admin/<family>/login")
def family_login_form(family: str):
    return jsonify({
        "status": "ok",
        "family": family,
        "next": _safe_next(request.args.get("next")),
        "can_register": not _components()["users"].has_privileged_accounts(),
    })


@auth_bp.post("/admin/<family>/login")
def family_login(family: str):
    payload = _payload()
    user = _components()["users"].authenticate(payload.get("email", ""), payload.get("password", ""))
    if user is None:
        log_event("warning", "auth.login_failed", email=payload.get("email", ""), family=family)
        return jsonify({"status": "error", "message": "Invalid email or password"}), 401
    if not is_privileged(user["role"]):
        log_event("warning", "auth.denied", user_id=user["id"], role=user["role"], family=family)
        return jsonify({"status": "error", "message": "This account has no back-office access"}), 403

    sign_in(session, user)
    log_event("info", "auth.login", user_id=user["id"], role=user["role"], family=family)
    target = _safe_next(request.args.get("next") or payload.get("next"))
    return redirect(target or f"/admin/{default_route_for(user['role'])}")


@auth_bp.post("/admin/<family>/register")
def family_register(family: str):
    users = _components()["users"]
    if users.has_privileged_accounts():
        log_event("warning", "auth.register_denied", family=family)
        return jsonify({"status": "error", "message": "Team accounts are created from the team screen"}), 403

    payload = _payload()
    user = users.bootstrap_super_admin(
        payload.get("email", ""),
        payload.get("password", ""),
        first_name=(payload.get("first_name") or "").strip() or None,
        last_name=(payload.get("last_name") or "").strip() or None,
    )
    if user is None:
        return jsonify({"status": "error", "message": "Team accounts are created from the team screen"}), 403
    sign_in(session, user)
    return redirect(f"/admin/{default_route_for(user['role'])}")


@auth_bp.post("/admin/logout")
def family_logout():
    sign_out(session)
    return redirect("/admin/admin/login")
