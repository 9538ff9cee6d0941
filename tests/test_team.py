"""
Tests: Team management and the assignable-role table
"""

from unittest.mock import MagicMock

import pytest

from partshop.common.errors import AuthorizationDenied, NotFoundError, ValidationError
from partshop.common.services.user_service import UserService


def member(role, **overrides):
    payload = {
        "email": f"new-{role}@parts.test",
        "password": "secret123",
        "confirm_password": "secret123",
        "first_name": "Nina",
        "last_name": "Newhire",
        "role": role,
    }
    payload.update(overrides)
    return payload


class TestAssignableRoleCheck:
    def test_manager_submitting_admin_rejected_before_store(self):
        session_factory = MagicMock()
        service = UserService(session_factory)
        with pytest.raises(ValidationError) as exc:
            service.save_team_member("manager", member("admin"))
        assert "role" in exc.value.errors
        session_factory.assert_not_called()

    def test_sales_member_cannot_create(self):
        session_factory = MagicMock()
        with pytest.raises(AuthorizationDenied):
            UserService(session_factory).save_team_member("sales_member", member("sales_member"))
        session_factory.assert_not_called()

    def test_manager_creates_sales_member(self, components, users):
        created = components["users"].save_team_member("manager", member("sales_member"))
        assert created["role"] == "sales_member"

    def test_password_confirmation_required(self, components, users):
        with pytest.raises(ValidationError) as exc:
            components["users"].save_team_member("admin", member("manager", confirm_password="other"))
        assert exc.value.errors == {"confirm_password": "Passwords don't match"}

    def test_admin_cannot_edit_peer_admin(self, components, users):
        with pytest.raises(AuthorizationDenied):
            components["users"].save_team_member(
                "admin",
                {"first_name": "Adam", "last_name": "Admin", "role": "manager"},
                member_id=users["admin"]["id"],
            )

    def test_customers_are_not_team_members(self, components, users):
        with pytest.raises(NotFoundError):
            components["users"].delete_team_member("super_admin", users["customer"]["id"])


class TestTeamEndpoints:
    def test_list_shows_assignable_roles(self, login, users):
        body = login(users["admin"]).get("/admin/team").get_json()
        assert body["assignable_roles"] == ["manager", "sales_member"]
        assert {m["role"] for m in body["members"]} == {"admin", "manager", "sales_member"}

    def test_manager_posting_admin_gets_400(self, login, users):
        resp = login(users["manager"]).post("/admin/team", json=member("admin"))
        assert resp.status_code == 400
        assert "role" in resp.get_json()["errors"]

    def test_manager_cannot_delete(self, login, users):
        resp = login(users["manager"]).delete(f"/admin/team/{users['sales_member']['id']}")
        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/admin/products")

    def test_admin_deletes_sales_member(self, login, users, components):
        resp = login(users["admin"]).delete(f"/admin/team/{users['sales_member']['id']}")
        assert resp.status_code == 200
        assert all(m["role"] != "sales_member" for m in components["users"].list_team())

    def test_update_member_role(self, login, users):
        resp = login(users["super_admin"]).put(
            f"/admin/team/{users['sales_member']['id']}",
            json={"first_name": "Sally", "last_name": "Seller", "role": "manager", "phone": "3135550199"},
        )
        assert resp.status_code == 200
        assert resp.get_json()["member"]["role"] == "manager"

    def test_customers_screen_searches(self, login, users):
        body = login(users["admin"]).get("/admin/customers?q=shopper").get_json()
        assert [c["email"] for c in body["customers"]] == ["shopper@parts.test"]
