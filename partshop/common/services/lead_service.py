"""
Sales lead pipeline.

Visibility and mutation rules:
- super_admin, admin and manager see every lead and may create, edit and
  reassign; only super_admin and admin may delete.
- sales_member sees only leads assigned to them and may change the status
  of those leads; nothing else.
- The assignee of a lead must hold one of the roles the acting user may
  assign leads to (see ``access.LEAD_ASSIGNEE_ROLES``).
"""

from typing import Dict, List, Optional
from uuid import uuid4
from datetime import datetime, timezone
from sqlalchemy.orm import joinedload

from ..errors import AuthorizationDenied, NotFoundError, ValidationError
from ..models.lead import LEAD_STATUSES, Lead, LeadAssignment
from ..models.user import Profile
from ..utils.dto import to_lead_dto
from ..utils.validators import FormValidator
from .access import Role, can_perform_action, lead_assignee_roles, parse_role
from .logging import log_event


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LeadService:
    def __init__(self, session_factory):
        self._session_factory = session_factory

    @staticmethod
    def _require(actor_role, action: str) -> None:
        if not can_perform_action(actor_role, "leads", action):
            role = parse_role(actor_role)
            raise AuthorizationDenied(role.value if role else None, "leads", action)

    def list_leads(
        self,
        *,
        actor_id: str,
        actor_role,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Dict]:
        self._require(actor_role, "view")
        with self._session_factory() as session:
            q = session.query(Lead).options(joinedload(Lead.assignment))
            if parse_role(actor_role) is Role.SALES_MEMBER:
                q = q.join(LeadAssignment, LeadAssignment.lead_id == Lead.id).filter(
                    LeadAssignment.assigned_to == actor_id
                )
            if status and status != "all":
                q = q.filter(Lead.status == status)
            leads = [to_lead_dto(lead) for lead in q.order_by(Lead.created_at.desc()).all()]
        if search:
            term = search.strip().lower()
            leads = [
                lead for lead in leads
                if term in f"{lead['first_name']} {lead['last_name']}".lower()
                or term in lead["email"].lower()
                or term in (lead["company"] or "").lower()
            ]
        return leads

    def _validate(self, payload: Dict) -> Dict:
        v = FormValidator(payload)
        cleaned = {
            "first_name": v.require_text("first_name", 2, "First name must be at least 2 characters"),
            "last_name": v.require_text("last_name", 2, "Last name must be at least 2 characters"),
            "email": v.require_email(),
            "phone": v.optional_text("phone", 10, "Phone number must be at least 10 characters"),
            "company": v.optional_text("company"),
            "interest": v.require_text("interest", 5, "Interest must be at least 5 characters"),
            "notes": v.optional_text("notes"),
            "assigned_to": v.require_text("assigned_to", 1, "Invalid user ID"),
        }
        v.raise_if_errors()
        return cleaned

    def _check_assignee(self, session, actor_role, assignee_id: str) -> None:
        roles = [r.value for r in lead_assignee_roles(actor_role)]
        assignee = session.query(Profile.role).filter(Profile.id == assignee_id).first()
        if assignee is None or assignee[0] not in roles:
            raise ValidationError({"assigned_to": "Select a team member you may assign leads to"})

    def create_lead(self, *, actor_id: str, actor_role, payload: Dict) -> Dict:
        self._require(actor_role, "create")
        data = self._validate(payload)
        assignee_id = data.pop("assigned_to")
        with self._session_factory() as session:
            self._check_assignee(session, actor_role, assignee_id)
            lead = Lead(id=str(uuid4()), status="new", **data)
            lead.assignment = LeadAssignment(
                id=str(uuid4()), assigned_to=assignee_id, assigned_by=actor_id, status="active"
            )
            session.add(lead)
            session.flush()
            log_event("info", "lead.saved", lead_id=lead.id, assigned_to=assignee_id, created=True)
            return to_lead_dto(lead)

    def update_lead(self, *, actor_id: str, actor_role, lead_id: str, payload: Dict) -> Dict:
        self._require(actor_role, "edit")
        data = self._validate(payload)
        assignee_id = data.pop("assigned_to")
        with self._session_factory() as session:
            lead = self._load(session, lead_id)
            for key, value in data.items():
                setattr(lead, key, value)
            lead.updated_at = _now()
            self._assign(session, lead, actor_id, actor_role, assignee_id)
            session.flush()
            log_event("info", "lead.saved", lead_id=lead.id, assigned_to=assignee_id, created=False)
            return to_lead_dto(lead)

    def assign_lead(self, *, actor_id: str, actor_role, lead_id: str, assignee_id: str) -> Dict:
        self._require(actor_role, "assign")
        with self._session_factory() as session:
            lead = self._load(session, lead_id)
            self._assign(session, lead, actor_id, actor_role, assignee_id)
            session.flush()
            log_event("info", "lead.assigned", lead_id=lead_id, assigned_to=assignee_id, assigned_by=actor_id)
            return to_lead_dto(lead)

    def _assign(self, session, lead: Lead, actor_id: str, actor_role, assignee_id: str) -> None:
        if lead.assignment and lead.assignment.assigned_to == assignee_id:
            return
        self._check_assignee(session, actor_role, assignee_id)
        if lead.assignment is None:
            lead.assignment = LeadAssignment(id=str(uuid4()), status="active")
        lead.assignment.assigned_to = assignee_id
        lead.assignment.assigned_by = actor_id
        lead.assignment.updated_at = _now()

    def update_status(self, *, actor_id: str, actor_role, lead_id: str, status: str) -> Dict:
        self._require(actor_role, "update_status")
        if status not in LEAD_STATUSES:
            raise ValidationError({"status": f"Status must be one of {', '.join(LEAD_STATUSES)}"})
        with self._session_factory() as session:
            lead = self._load(session, lead_id)
            if parse_role(actor_role) is Role.SALES_MEMBER and (
                lead.assignment is None or lead.assignment.assigned_to != actor_id
            ):
                # unassigned leads are invisible to sales members
                raise NotFoundError("lead", lead_id)
            lead.status = status
            lead.updated_at = _now()
            session.flush()
            return to_lead_dto(lead)

    def delete_lead(self, *, actor_role, lead_id: str) -> None:
        self._require(actor_role, "delete")
        with self._session_factory() as session:
            session.delete(self._load(session, lead_id))

    @staticmethod
    def _load(session, lead_id: str) -> Lead:
        lead = session.query(Lead).options(joinedload(Lead.assignment)).filter(Lead.id == lead_id).first()
        if not lead:
            raise NotFoundError("lead", lead_id)
        return lead
