"""
Role capability tables for the back office.

Every screen declares its own allow-list here instead of in its view code.
The lists are explicit rather than derived from the role hierarchy because
several screens do not follow it (orders and customers skip ``manager``,
leads include ``sales_member``).

Lookups are pure and fail closed: an unknown role, route or action yields
no capability.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple


class Role(str, Enum):
    CUSTOMER = "customer"
    SALES_MEMBER = "sales_member"
    MANAGER = "manager"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


# customer < sales_member < manager < admin < super_admin
PRIVILEGED_ROLES: FrozenSet[Role] = frozenset(
    {Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER, Role.SALES_MEMBER}
)

_TOP = frozenset({Role.SUPER_ADMIN, Role.ADMIN})
_STAFF = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.MANAGER})

# Declared order is menu order and drives default_route_for.
ROUTE_CAPABILITIES: Tuple[Tuple[str, str, FrozenSet[Role]], ...] = (
    ("products", "Products", _STAFF),
    ("categories", "Categories", _STAFF),
    ("orders", "Orders", _TOP),
    ("customers", "Customers", _TOP),
    ("team", "Team", _STAFF),
    ("leads", "Leads", PRIVILEGED_ROLES),
    ("analytics", "Analytics", _TOP),
    ("settings", "Settings", _TOP),
)

_ROUTES: Dict[str, FrozenSet[Role]] = {key: roles for key, _, roles in ROUTE_CAPABILITIES}

ACTION_CAPABILITIES: Dict[Tuple[str, str], FrozenSet[Role]] = {
    ("products", "create"): _STAFF,
    ("products", "edit"): _STAFF,
    ("products", "delete"): _STAFF,
    ("products", "import"): _STAFF,
    ("products", "export"): _STAFF,
    ("categories", "create"): _STAFF,
    ("categories", "edit"): _STAFF,
    ("categories", "delete"): _STAFF,
    ("orders", "edit"): _TOP,
    ("team", "create"): _STAFF,
    ("team", "edit"): _STAFF,
    ("team", "delete"): _TOP,
    ("leads", "create"): _STAFF,
    ("leads", "edit"): _STAFF,
    ("leads", "assign"): _STAFF,
    # sales members are further limited to leads assigned to them
    ("leads", "update_status"): PRIVILEGED_ROLES,
    ("leads", "delete"): _TOP,
    ("settings", "edit"): _TOP,
}

# Roles an actor may give to a new or edited team member.
TEAM_ASSIGNABLE_ROLES: Dict[Role, Tuple[Role, ...]] = {
    Role.SUPER_ADMIN: (Role.ADMIN, Role.MANAGER, Role.SALES_MEMBER),
    Role.ADMIN: (Role.MANAGER, Role.SALES_MEMBER),
    Role.MANAGER: (Role.SALES_MEMBER,),
}

# Roles whose members may own a lead, per assigning actor.
LEAD_ASSIGNEE_ROLES: Dict[Role, Tuple[Role, ...]] = {
    Role.SUPER_ADMIN: (Role.MANAGER, Role.SALES_MEMBER),
    Role.ADMIN: (Role.MANAGER, Role.SALES_MEMBER),
    Role.MANAGER: (Role.SALES_MEMBER,),
}

FALLBACK_ROUTE = "leads"


def parse_role(value) -> Optional[Role]:
    """Map a stored role string onto the closed enumeration; anything else is None."""
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value))
    except ValueError:
        return None


def is_privileged(role) -> bool:
    return parse_role(role) in PRIVILEGED_ROLES


def can_access_route(role, route_key: str) -> bool:
    allowed = _ROUTES.get(route_key)
    resolved = parse_role(role)
    return bool(allowed) and resolved in allowed


def can_perform_action(role, screen_key: str, action_key: str) -> bool:
    if action_key == "view":
        return can_access_route(role, screen_key)
    allowed = ACTION_CAPABILITIES.get((screen_key, action_key))
    resolved = parse_role(role)
    return bool(allowed) and resolved in allowed


def allowed_routes(role) -> List[str]:
    return [key for key, _, _ in ROUTE_CAPABILITIES if can_access_route(role, key)]


def navigation_for(role) -> List[Dict[str, str]]:
    return [
        {"key": key, "name": label, "href": f"/admin/{key}"}
        for key, label, _ in ROUTE_CAPABILITIES
        if can_access_route(role, key)
    ]


def default_route_for(role) -> str:
    routes = allowed_routes(role)
    return routes[0] if routes else FALLBACK_ROUTE


def assignable_roles(role) -> Tuple[Role, ...]:
    resolved = parse_role(role)
    return TEAM_ASSIGNABLE_ROLES.get(resolved, ()) if resolved else ()


def lead_assignee_roles(role) -> Tuple[Role, ...]:
    resolved = parse_role(role)
    return LEAD_ASSIGNEE_ROLES.get(resolved, ()) if resolved else ()
