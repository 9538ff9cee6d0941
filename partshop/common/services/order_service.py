from typing import Dict, List, Optional
from uuid import uuid4
from datetime import datetime, timezone
from decimal import Decimal
from ..errors import NotFoundError, ValidationError
from ..models.order import ORDER_STATUSES, Order
from ..models.user import Profile
from ..utils.dto import to_order_dto
from .logging import log_event


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OrderService:
    """Order creation and retrieval backed by DB."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def create_order(
        self,
        *,
        user_id: str,
        items: List[Dict],
        total: Decimal,
        currency: str,
        shipping_address: Dict,
        billing_address: Optional[Dict] = None,
    ) -> Dict:
        """Create a pending, unpaid order from a cart snapshot."""
        oid = str(uuid4())
        with self._session_factory() as session:
            order = Order(
                id=oid,
                user_id=user_id,
                items=items,
                total_amount=total,
                currency=currency,
                shipping_address=shipping_address,
                billing_address=billing_address or shipping_address,
                status="pending",
                payment_status="unpaid",
            )
            session.add(order)
            session.flush()
        log_event("info", "order.created", order_id=oid, items=len(items), total=float(total))
        return {"order_id": oid, "status": "pending"}

    def attach_payment_session(self, order_id: str, external_payment_id: str) -> None:
        with self._session_factory() as session:
            order = self._load(session, order_id)
            order.external_payment_id = external_payment_id

    def payment_session_of(self, order_id: str) -> Optional[str]:
        with self._session_factory() as session:
            return self._load(session, order_id).external_payment_id

    def mark_paid(self, order_id: str) -> Dict:
        with self._session_factory() as session:
            order = self._load(session, order_id)
            if order.payment_status != "paid":
                order.payment_status = "paid"
                order.paid_at = _now()
                log_event("info", "order.paid", order_id=order_id)
            return to_order_dto(order)

    def mark_cancelled(self, order_id: str) -> Dict:
        with self._session_factory() as session:
            order = self._load(session, order_id)
            if order.payment_status != "paid":
                order.status = "cancelled"
            return to_order_dto(order)

    def get_order(self, order_id: str) -> Dict:
        if not order_id:
            raise NotFoundError("order")
        with self._session_factory() as session:
            return to_order_dto(self._load(session, order_id))

    def list_for_user(self, user_id: str) -> List[Dict]:
        with self._session_factory() as session:
            rows = session.query(Order).filter(Order.user_id == user_id).order_by(Order.created_at.desc()).all()
            return [to_order_dto(o) for o in rows]

    def list_orders(self, *, status: Optional[str] = None, search: Optional[str] = None) -> List[Dict]:
        with self._session_factory() as session:
            q = session.query(Order, Profile.email).join(Profile, Profile.id == Order.user_id, isouter=True)
            if status and status != "all":
                q = q.filter(Order.status == status)
            result = []
            for order, email in q.order_by(Order.created_at.desc()).all():
                dto = to_order_dto(order)
                dto["customer_email"] = email
                result.append(dto)
        if search:
            term = search.strip().lower()
            result = [o for o in result if term in o["id"].lower() or term in (o["customer_email"] or "").lower()]
        return result

    def update_status(self, order_id: str, status: str) -> Dict:
        if status not in ORDER_STATUSES:
            raise ValidationError({"status": f"Status must be one of {', '.join(ORDER_STATUSES)}"})
        with self._session_factory() as session:
            order = self._load(session, order_id)
            previous = order.status
            order.status = status
            log_event("info", "order.status_changed", order_id=order_id, previous=previous, status=status)
            return to_order_dto(order)

    @staticmethod
    def _load(session, order_id: str) -> Order:
        order = session.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError("order", order_id)
        return order
