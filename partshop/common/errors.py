"""
Error types shared by services and blueprints.

ShopError (base)
├── ValidationError            form-field violations, rendered inline
├── NotFoundError              missing record
├── RemoteOperationError       data store / payment processor failure
└── AuthorizationDenied        role lacks a capability
    └── AuthorizationIndeterminate   role lookup failed, fail closed

Services raise these; the handlers registered in ``create_app`` turn them
into JSON bodies or redirects.
"""

from typing import Dict, Optional


class ShopError(Exception):
    """Base exception carrying a readable message and context details."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.__class__.__name__}('{self.message}', {details_str})"
        return f"{self.__class__.__name__}('{self.message}')"


class ValidationError(ShopError):
    """One or more form fields failed validation."""

    def __init__(self, errors: Dict[str, str], message: str = "Please correct the highlighted fields"):
        super().__init__(message, details={"errors": dict(errors)})
        self.errors = dict(errors)


class NotFoundError(ShopError):
    def __init__(self, entity: str, entity_id: Optional[str] = None):
        message = f"{entity} {entity_id} not found" if entity_id else f"{entity} not found"
        super().__init__(message, details={"entity": entity, "entity_id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class RemoteOperationError(ShopError):
    """The data store or payment processor returned an error."""

    def __init__(self, operation: str, message: str):
        super().__init__(message, details={"operation": operation})
        self.operation = operation


class AuthorizationDenied(ShopError):
    """Resolved role lacks the route or action capability."""

    def __init__(self, role: Optional[str], route_key: Optional[str], action_key: Optional[str] = None):
        target = f"{route_key}.{action_key}" if action_key else (route_key or "admin")
        super().__init__(
            f"Role {role or 'anonymous'} may not access {target}",
            details={"role": role, "route_key": route_key, "action_key": action_key},
        )
        self.role = role
        self.route_key = route_key
        self.action_key = action_key


class AuthorizationIndeterminate(AuthorizationDenied):
    """Role lookup failed; treated exactly like a denial."""

    def __init__(self, principal_id: Optional[str], reason: str, route_key: Optional[str] = None):
        super().__init__(None, route_key)
        self.message = f"Could not resolve role for {principal_id or 'anonymous'}: {reason}"
        self.args = (self.message,)
        self.details.update({"principal_id": principal_id, "reason": reason})
        self.principal_id = principal_id
        self.reason = reason
