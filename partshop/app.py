"""Auto parts storefront Flask application."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from .common.db.session import create_session_factory, init_db
from .common.errors import AuthorizationDenied, NotFoundError, RemoteOperationError, ValidationError
from .common.services.access import default_route_for
from .common.services.analytics_service import AnalyticsService
from .common.services.bulk_service import BulkProductService
from .common.services.cart_service import CartService
from .common.services.catalog_service import CatalogService
from .common.services.checkout_service import CheckoutService
from .common.services.lead_service import LeadService
from .common.services.logging import configure_logging, log_event
from .common.services.order_service import OrderService
from .common.services.payment_gateway import StripeCheckoutGateway
from .common.services.role_resolver import RoleResolver, login_path_for
from .common.services.user_service import UserService
from .config import ShopConfig
from .routes import admin, api, auth, user


def build_components(config: ShopConfig, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    overrides = overrides or {}
    session_factory = overrides.get("session_factory") or create_session_factory(config.app.database_url)
    init_db(session_factory)

    catalog = CatalogService(session_factory)
    users = UserService(session_factory)
    orders = OrderService(session_factory)
    carts = CartService(catalog, max_quantity=config.max_line_quantity)
    gateway = overrides.get("payment_gateway") or StripeCheckoutGateway(
        config.stripe_secret_key,
        success_url=config.checkout_success_url,
        cancel_url=config.checkout_cancel_url,
        currency=config.app.currency,
    )
    return {
        "session_factory": session_factory,
        "catalog": catalog,
        "users": users,
        "orders": orders,
        "carts": carts,
        "checkout": CheckoutService(carts, orders, gateway, currency=config.app.currency),
        "leads": LeadService(session_factory),
        "analytics": AnalyticsService(session_factory),
        "bulk": BulkProductService(catalog),
        "role_resolver": RoleResolver(users.get_role),
        "payment_gateway": gateway,
    }


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation(exc: ValidationError):
        return jsonify({"status": "error", "message": exc.message, "errors": exc.errors}), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(exc: NotFoundError):
        return jsonify({"status": "error", "message": exc.message}), 404

    @app.errorhandler(RemoteOperationError)
    def handle_remote(exc: RemoteOperationError):
        log_event("error", "remote.error", operation=exc.operation, message=exc.message, path=request.path)
        return jsonify({"status": "error", "message": exc.message}), 502

    @app.errorhandler(AuthorizationDenied)
    def handle_denied(exc: AuthorizationDenied):
        log_event("warning", "auth.denied", role=exc.role, route=exc.route_key, action=exc.action_key, path=request.path)
        if exc.action_key and exc.role:
            target = f"/admin/{default_route_for(exc.role)}"
        else:
            target = login_path_for(request.path)
        # the notice rides in the body; the session is left untouched
        response = jsonify({"status": "error", "message": "You do not have permission to do that.", "redirect": target})
        response.status_code = 302
        response.headers["Location"] = target
        return response


def create_app(config: Optional[ShopConfig] = None, components: Optional[Dict[str, Any]] = None) -> Flask:
    config = config or ShopConfig.load()
    configure_logging(config.app.log_level)

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["TESTING"] = config.testing
    app.config["SHOP_CONFIG"] = config

    app.extensions["partshop_components"] = build_components(config, components)

    if config.bootstrap_admin_email and config.bootstrap_admin_password:
        app.extensions["partshop_components"]["users"].bootstrap_super_admin(
            config.bootstrap_admin_email, config.bootstrap_admin_password
        )

    register_error_handlers(app)
    app.register_blueprint(user.user_bp)
    app.register_blueprint(api.api_bp)
    app.register_blueprint(auth.auth_bp)
    app.register_blueprint(admin.admin_bp)

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)


if __name__ == "__main__":
    main()
