"""
Pytest configuration and fixtures for tests.

Every test gets its own app bound to a fresh in-memory SQLite database and a
fake payment gateway, so nothing leaves the process.
"""

import pytest

from partshop.app import create_app
from partshop.common.config import AppConfig
from partshop.common.errors import RemoteOperationError
from partshop.common.services.access import Role
from partshop.common.services.identity import PRINCIPAL_KEY
from partshop.config import ShopConfig


PASSWORD = "secret123"


class FakeGateway:
    """Stands in for the hosted checkout processor."""

    def __init__(self):
        self.currency = "usd"
        self.sessions = {}
        self.paid = set()
        self.fail_create = False

    def create_session(self, *, order_id, items, customer_email=None):
        if self.fail_create:
            raise RemoteOperationError("payment", "Payment processor is unreachable")
        session_id = f"cs_test_{len(self.sessions) + 1}"
        self.sessions[session_id] = {"order_id": order_id, "items": items, "email": customer_email}
        return {"id": session_id, "url": f"https://checkout.test/{session_id}"}

    def is_paid(self, session_id):
        return session_id in self.paid


# ============================================================================
# App Fixtures
# ============================================================================

@pytest.fixture
def shop_config(tmp_path):
    app_config = AppConfig(
        database_url="sqlite:///:memory:",
        secret_key="test-secret",
        log_level="WARNING",
        store_base_url="http://shop.test",
        currency="USD",
    )
    return ShopConfig(app=app_config, data_root=tmp_path, testing=True)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(shop_config, gateway):
    return create_app(shop_config, components={"payment_gateway": gateway})


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def components(app):
    return app.extensions["partshop_components"]


# ============================================================================
# Seed Data
# ============================================================================

def product_payload(category_id, **overrides):
    payload = {
        "name": "Ceramic Brake Pads",
        "description": "Low dust ceramic front brake pads",
        "price": "49.99",
        "make": "Toyota",
        "model": "Camry",
        "year": 2018,
        "condition": "new",
        "stock": 20,
        "category_id": category_id,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def category(components):
    return components["catalog"].save_category({"name": "Brakes", "description": "Pads, rotors and calipers"})


@pytest.fixture
def products(components, category):
    catalog = components["catalog"]
    return {
        "pads": catalog.create_product(product_payload(category["id"])),
        "filter": catalog.create_product(
            product_payload(
                category["id"],
                name="Oil Filter",
                description="Spin-on oil filter for 2.5L engines",
                price="9.50",
                make="Honda",
                model="Civic",
                year=2015,
                stock=3,
            )
        ),
        "plug": catalog.create_product(
            product_payload(
                category["id"],
                name="Iridium Spark Plug",
                description="Long life iridium spark plug",
                price="12.00",
                condition="used",
                stock=0,
            )
        ),
    }


@pytest.fixture
def users(components):
    service = components["users"]
    people = {
        "super_admin": service.bootstrap_super_admin(
            "owner@parts.test", PASSWORD, first_name="Olive", last_name="Owner"
        )
    }
    for role in (Role.ADMIN, Role.MANAGER, Role.SALES_MEMBER):
        people[role.value] = service.save_team_member(
            Role.SUPER_ADMIN,
            {
                "email": f"{role.value}@parts.test",
                "password": PASSWORD,
                "confirm_password": PASSWORD,
                "first_name": role.value.title(),
                "last_name": "Member",
                "role": role.value,
            },
        )
    people["customer"] = service.register_customer(
        {"email": "shopper@parts.test", "password": PASSWORD, "first_name": "Sam", "last_name": "Shopper"}
    )
    return people


def sign_in_as(client, user):
    with client.session_transaction() as store:
        store[PRINCIPAL_KEY] = user["id"]


@pytest.fixture
def login(client):
    def _login(user):
        sign_in_as(client, user)
        return client
    return _login
