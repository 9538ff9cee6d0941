"""
Unit Tests: Role capability tables

Covers partshop/common/services/access.py route, action, navigation and
assignable-role lookups.
"""

import pytest

from partshop.common.services.access import (
    ROUTE_CAPABILITIES,
    Role,
    allowed_routes,
    assignable_roles,
    can_access_route,
    can_perform_action,
    default_route_for,
    is_privileged,
    lead_assignee_roles,
    navigation_for,
    parse_role,
)


class TestParseRole:
    def test_known_strings_map_to_roles(self):
        assert parse_role("manager") is Role.MANAGER
        assert parse_role(Role.ADMIN) is Role.ADMIN

    @pytest.mark.parametrize("raw", [None, "", "root", "Admin"])
    def test_anything_else_is_none(self, raw):
        assert parse_role(raw) is None

    def test_customer_is_not_privileged(self):
        assert not is_privileged("customer")
        assert is_privileged("sales_member")


class TestRouteAccess:
    @pytest.mark.parametrize("route", ["orders", "customers", "analytics", "settings"])
    def test_sales_member_denied_top_level_screens(self, route):
        assert not can_access_route(Role.SALES_MEMBER, route)

    def test_sales_member_allowed_leads(self):
        assert can_access_route(Role.SALES_MEMBER, "leads")

    @pytest.mark.parametrize("route", ["orders", "customers"])
    def test_manager_skips_orders_and_customers(self, route):
        assert not can_access_route(Role.MANAGER, route)
        assert can_access_route(Role.ADMIN, route)

    def test_unknown_route_fails_closed(self):
        assert not can_access_route(Role.SUPER_ADMIN, "billing")

    def test_unknown_role_fails_closed(self):
        assert not can_access_route("janitor", "leads")
        assert not can_access_route(None, "leads")

    def test_customer_has_no_admin_routes(self):
        assert allowed_routes(Role.CUSTOMER) == []

    def test_lookup_is_repeatable(self):
        results = {can_access_route(Role.MANAGER, "team") for _ in range(5)}
        assert results == {True}


class TestActions:
    def test_view_follows_route_access(self):
        assert can_perform_action(Role.SALES_MEMBER, "leads", "view")
        assert not can_perform_action(Role.SALES_MEMBER, "orders", "view")

    def test_sales_member_may_only_update_lead_status(self):
        assert can_perform_action(Role.SALES_MEMBER, "leads", "update_status")
        for action in ("create", "edit", "assign", "delete"):
            assert not can_perform_action(Role.SALES_MEMBER, "leads", action)

    def test_team_delete_needs_admin(self):
        assert not can_perform_action(Role.MANAGER, "team", "delete")
        assert can_perform_action(Role.ADMIN, "team", "delete")

    def test_unknown_action_fails_closed(self):
        assert not can_perform_action(Role.SUPER_ADMIN, "products", "launch")


class TestNavigation:
    def test_navigation_keeps_declared_order(self):
        declared = [key for key, _, _ in ROUTE_CAPABILITIES]
        keys = [item["key"] for item in navigation_for(Role.SUPER_ADMIN)]
        assert keys == declared

    def test_navigation_items_link_to_admin_paths(self):
        assert navigation_for(Role.SALES_MEMBER) == [{"key": "leads", "name": "Leads", "href": "/admin/leads"}]

    @pytest.mark.parametrize(
        "role,expected",
        [
            (Role.SUPER_ADMIN, "products"),
            (Role.ADMIN, "products"),
            (Role.MANAGER, "products"),
            (Role.SALES_MEMBER, "leads"),
        ],
    )
    def test_default_route_is_first_allowed(self, role, expected):
        assert default_route_for(role) == expected


class TestAssignableRoles:
    def test_each_actor_gets_a_narrower_set(self):
        assert assignable_roles(Role.SUPER_ADMIN) == (Role.ADMIN, Role.MANAGER, Role.SALES_MEMBER)
        assert assignable_roles(Role.ADMIN) == (Role.MANAGER, Role.SALES_MEMBER)
        assert assignable_roles(Role.MANAGER) == (Role.SALES_MEMBER,)
        assert assignable_roles(Role.SALES_MEMBER) == ()

    def test_lead_assignees_never_include_admins(self):
        assert Role.ADMIN not in lead_assignee_roles(Role.SUPER_ADMIN)
        assert lead_assignee_roles(Role.MANAGER) == (Role.SALES_MEMBER,)
        assert lead_assignee_roles("customer") == ()
