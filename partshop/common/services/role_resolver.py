"""
Role resolution and the admin route guard.

The role is not carried in the session; every protected request looks it up
from the profile store. A lookup is ``PENDING`` until it completes, then
``RESOLVED`` (possibly with no role) or ``FAILED``. Failure counts as
unauthenticated.

``RouteGuard`` walks ``CHECKING -> AUTHORIZED | UNAUTHORIZED``. Results
delivered to a guard after it was cancelled or restarted are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import quote

from .access import Role, can_access_route, is_privileged, parse_role
from .logging import log_event


class ResolutionState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class RoleResolution:
    state: ResolutionState
    role: Optional[Role] = None
    error: Optional[str] = None

    @classmethod
    def pending(cls) -> "RoleResolution":
        return cls(ResolutionState.PENDING)

    @classmethod
    def resolved(cls, role: Optional[Role]) -> "RoleResolution":
        return cls(ResolutionState.RESOLVED, role=role)

    @classmethod
    def failed(cls, error: str) -> "RoleResolution":
        return cls(ResolutionState.FAILED, error=error)

    @property
    def effective_role(self) -> Optional[Role]:
        """Role to authorise with; None means unauthenticated."""
        return self.role if self.state is ResolutionState.RESOLVED else None


class RoleResolver:
    """Looks up a principal's role through ``profile_lookup(principal_id)``.

    ``profile_lookup`` returns the stored role string or None when no profile
    exists; it may raise on transport errors.
    """

    def __init__(self, profile_lookup: Callable[[str], Optional[str]]) -> None:
        self._lookup = profile_lookup

    def resolve(self, principal_id: Optional[str]) -> RoleResolution:
        if not principal_id:
            return RoleResolution.resolved(None)
        try:
            raw = self._lookup(principal_id)
        except Exception as exc:
            log_event("warning", "role.resolve_failed", principal_id=principal_id, error=str(exc))
            return RoleResolution.failed(str(exc))
        return RoleResolution.resolved(parse_role(raw))


class GuardState(str, Enum):
    CHECKING = "checking"
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"


def route_key_for(path: str) -> Optional[str]:
    """``/admin/products/12`` -> ``products``; bare ``/admin`` -> None."""
    parts = [p for p in (path or "").split("/") if p]
    if len(parts) < 2 or parts[0] != "admin":
        return None
    return parts[1]


def login_path_for(requested_path: str) -> str:
    """Role-family login page for a protected location, keeping the location
    in ``next`` so sign-in can resume there."""
    family = route_key_for(requested_path) or "admin"
    return f"/admin/{family}/login?next={quote(requested_path or '/admin/', safe='/')}"


class RouteGuard:
    """Decides whether one protected admin location may render.

    ``route_key`` None protects the admin shell itself, which any privileged
    role may enter.
    """

    def __init__(self, route_key: Optional[str] = None) -> None:
        self.route_key = route_key
        self.state = GuardState.CHECKING
        self.resolution = RoleResolution.pending()
        self.redirect_to: Optional[str] = None
        self._generation = 0

    @property
    def role(self) -> Optional[Role]:
        return self.resolution.effective_role

    def begin(self) -> int:
        self._generation += 1
        self.state = GuardState.CHECKING
        self.resolution = RoleResolution.pending()
        self.redirect_to = None
        return self._generation

    def cancel(self) -> None:
        """Invalidate any lookup still in flight."""
        self._generation += 1

    def apply(self, ticket: int, resolution: RoleResolution, requested_path: str) -> bool:
        """Apply a finished lookup. Returns False when the result was stale."""
        if ticket != self._generation or self.state is not GuardState.CHECKING:
            return False
        if resolution.state is ResolutionState.PENDING:
            return False
        self.resolution = resolution
        role = resolution.effective_role
        if self.route_key is None:
            allowed = is_privileged(role)
        else:
            allowed = can_access_route(role, self.route_key)
        if allowed:
            self.state = GuardState.AUTHORIZED
        else:
            self.state = GuardState.UNAUTHORIZED
            self.redirect_to = login_path_for(requested_path)
        return True

    def run(self, resolver: RoleResolver, principal_id: Optional[str], requested_path: str) -> "RouteGuard":
        ticket = self.begin()
        self.apply(ticket, resolver.resolve(principal_id), requested_path)
        return self
