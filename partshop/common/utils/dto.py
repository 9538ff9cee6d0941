from typing import Any, Dict


def _iso(value: Any):
    return value.isoformat() if value is not None else None


def to_product_dto(row: Any) -> Dict:
    stock = getattr(row, "stock", 0) or 0
    return {
        "id": getattr(row, "id", None),
        "name": getattr(row, "name", None),
        "slug": getattr(row, "slug", None),
        "description": getattr(row, "description", None),
        "price": float(getattr(row, "price", 0) or 0),
        "category_id": getattr(row, "category_id", None),
        "make": getattr(row, "make", None),
        "model": getattr(row, "model", None),
        "year": getattr(row, "year", None),
        "condition": getattr(row, "condition", None),
        "stock": stock,
        "in_stock": stock > 0,
        "images": getattr(row, "images", None) or [],
    }


def to_category_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "name": row.name,
        "slug": row.slug,
        "description": row.description,
    }


def to_user_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "email": row.email,
        "first_name": row.first_name,
        "last_name": row.last_name,
        "phone": row.phone,
        "full_name": row.full_name,
        "role": row.role,
        "created_at": _iso(row.created_at),
    }


def to_order_dto(row: Any) -> Dict:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "items": row.items or [],
        "total_amount": float(row.total_amount or 0),
        "currency": row.currency,
        "shipping_address": row.shipping_address or {},
        "status": row.status,
        "payment_status": row.payment_status,
        "created_at": _iso(row.created_at),
        "paid_at": _iso(row.paid_at),
    }


def to_lead_dto(row: Any) -> Dict:
    assignment = row.assignment
    return {
        "id": row.id,
        "first_name": row.first_name,
        "last_name": row.last_name,
        "email": row.email,
        "phone": row.phone,
        "company": row.company,
        "interest": row.interest,
        "notes": row.notes,
        "status": row.status,
        "assigned_to": assignment.assigned_to if assignment else None,
        "created_at": _iso(row.created_at),
    }
