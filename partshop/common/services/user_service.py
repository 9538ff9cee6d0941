from typing import Dict, List, Optional
from uuid import uuid4
from datetime import datetime, timezone
from sqlalchemy import or_
from werkzeug.security import check_password_hash, generate_password_hash

from ..errors import AuthorizationDenied, NotFoundError, ValidationError
from ..models.user import Profile
from ..utils.dto import to_user_dto
from ..utils.validators import FormValidator
from .access import PRIVILEGED_ROLES, Role, assignable_roles, can_perform_action, lead_assignee_roles, parse_role
from .logging import log_event


TEAM_ROLES = (Role.ADMIN.value, Role.MANAGER.value, Role.SALES_MEMBER.value)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class UserService:
    """Accounts, customers and back-office team members."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    # --- identity -----------------------------------------------------

    def get_role(self, user_id: str) -> Optional[str]:
        """Profile lookup used by the role resolver."""
        with self._session_factory() as session:
            row = session.query(Profile.role).filter(Profile.id == user_id).first()
            return row[0] if row else None

    def get_profile(self, user_id: str) -> Dict:
        with self._session_factory() as session:
            p = session.query(Profile).filter(Profile.id == user_id).first()
            if not p:
                raise NotFoundError("user", user_id)
            return to_user_dto(p)

    def authenticate(self, email: str, password: str) -> Optional[Dict]:
        email = (email or "").strip().lower()
        with self._session_factory() as session:
            p = session.query(Profile).filter(Profile.email == email).first()
            if p is None or not check_password_hash(p.password_hash, password or ""):
                return None
            return to_user_dto(p)

    def register_customer(self, payload: Dict) -> Dict:
        v = FormValidator(payload)
        email = v.require_email()
        password = v.require_text("password", 6, "Password must be at least 6 characters")
        first_name = v.optional_text("first_name", 2, "First name must be at least 2 characters")
        last_name = v.optional_text("last_name", 2, "Last name must be at least 2 characters")
        v.raise_if_errors()
        return self._create_profile(
            email=email, password=password, first_name=first_name, last_name=last_name, role=Role.CUSTOMER.value
        )

    def _create_profile(self, *, email: str, password: str, role: str, **fields) -> Dict:
        with self._session_factory() as session:
            if session.query(Profile.id).filter(Profile.email == email).first():
                raise ValidationError({"email": "An account with this email already exists"})
            p = Profile(
                id=str(uuid4()),
                email=email,
                password_hash=generate_password_hash(password),
                role=role,
                **fields,
            )
            session.add(p)
            session.flush()
            return to_user_dto(p)

    def has_privileged_accounts(self) -> bool:
        with self._session_factory() as session:
            roles = [r.value for r in PRIVILEGED_ROLES]
            return session.query(Profile.id).filter(Profile.role.in_(roles)).first() is not None

    def bootstrap_super_admin(self, email: str, password: str, **fields) -> Optional[Dict]:
        """Create the first super admin; does nothing once any team account exists."""
        if self.has_privileged_accounts():
            return None
        v = FormValidator({"email": email, "password": password})
        email = v.require_email()
        password = v.require_text("password", 6, "Password must be at least 6 characters")
        v.raise_if_errors()
        user = self._create_profile(email=email, password=password, role=Role.SUPER_ADMIN.value, **fields)
        log_event("info", "team.bootstrapped", user_id=user["id"])
        return user

    # --- customers ----------------------------------------------------

    def list_customers(self, search: Optional[str] = None) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(Profile).filter(Profile.role == Role.CUSTOMER.value)
            if search:
                like = f"%{search.strip()}%"
                q = q.filter(
                    or_(
                        Profile.email.ilike(like),
                        Profile.first_name.ilike(like),
                        Profile.last_name.ilike(like),
                        (Profile.first_name + " " + Profile.last_name).ilike(like),
                    )
                )
            return [to_user_dto(p) for p in q.order_by(Profile.created_at.desc()).all()]

    # --- team ---------------------------------------------------------

    def list_team(self, search: Optional[str] = None) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(Profile).filter(Profile.role.in_(TEAM_ROLES))
            members = [to_user_dto(p) for p in q.order_by(Profile.first_name.asc()).all()]
        if search:
            term = search.strip().lower()
            members = [
                m for m in members
                if term in f"{m['first_name'] or ''} {m['last_name'] or ''}".lower()
                or term in m["email"].lower()
                or term in m["role"].lower()
            ]
        return members

    def list_lead_assignees(self, actor_role) -> List[Dict]:
        roles = [r.value for r in lead_assignee_roles(actor_role)]
        if not roles:
            return []
        with self._session_factory() as session:
            q = session.query(Profile).filter(Profile.role.in_(roles)).order_by(Profile.first_name.asc())
            return [to_user_dto(p) for p in q.all()]

    def save_team_member(self, actor_role, payload: Dict, member_id: Optional[str] = None) -> Dict:
        """Create or update a team member.

        The submitted role is checked against the actor's assignable set
        before the store is touched.
        """
        action = "edit" if member_id else "create"
        if not can_perform_action(actor_role, "team", action):
            raise AuthorizationDenied(getattr(parse_role(actor_role), "value", None), "team", action)
        allowed = [r.value for r in assignable_roles(actor_role)]

        v = FormValidator(payload)
        first_name = v.require_text("first_name", 2, "First name must be at least 2 characters")
        last_name = v.require_text("last_name", 2, "Last name must be at least 2 characters")
        role = v.require_choice("role", allowed, "Please select a valid role")
        phone = v.optional_text("phone", 10, "Phone number must be at least 10 characters")
        if member_id is None:
            email = v.require_email()
            password = v.require_text("password", 6, "Password must be at least 6 characters")
            if password and payload.get("confirm_password") != payload.get("password"):
                v.fail("confirm_password", "Passwords don't match")
        v.raise_if_errors()

        if member_id is None:
            member = self._create_profile(
                email=email, password=password, role=role, first_name=first_name, last_name=last_name, phone=phone
            )
            log_event("info", "team.saved", user_id=member["id"], role=role, created=True)
            return member

        with self._session_factory() as session:
            p = session.query(Profile).filter(Profile.id == member_id).first()
            if p is None or p.role not in TEAM_ROLES:
                raise NotFoundError("team member", member_id)
            if p.role not in allowed:
                raise AuthorizationDenied(parse_role(actor_role).value, "team", "edit")
            p.first_name = first_name
            p.last_name = last_name
            p.phone = phone
            p.role = role
            p.updated_at = _now()
            session.flush()
            log_event("info", "team.saved", user_id=p.id, role=role, created=False)
            return to_user_dto(p)

    def delete_team_member(self, actor_role, member_id: str) -> None:
        if not can_perform_action(actor_role, "team", "delete"):
            raise AuthorizationDenied(getattr(parse_role(actor_role), "value", None), "team", "delete")
        allowed = [r.value for r in assignable_roles(actor_role)]
        with self._session_factory() as session:
            p = session.query(Profile).filter(Profile.id == member_id).first()
            if p is None or p.role not in TEAM_ROLES:
                raise NotFoundError("team member", member_id)
            if p.role not in allowed:
                raise AuthorizationDenied(parse_role(actor_role).value, "team", "delete")
            session.delete(p)
