# Overview: Service-layer operations for customer credits.

from __future__ import annotations

from ..extensions import db
from ..models import Credit
from ..validation import ValidationError, parse_money, require_fields
from shopdesk.time_utils import utcnow


def list_credits(owner_id: int, *, open_only: bool = False) -> list[Credit]:
    query = db.session.query(Credit).filter(Credit.owner_id == owner_id)
    if open_only:
        query = query.filter(Credit.remaining_amount > 0)
    return query.order_by(Credit.created_at.desc(), Credit.id.desc()).all()


def create_cash_credit(owner_id: int, data: dict) -> Credit:
    """Money lent to a customer outside of any sale."""
    require_fields(data, "customer_name", "amount")
    customer_name = str(data["customer_name"]).strip()
    if not customer_name:
        raise ValidationError("customer_name is required")
    amount = parse_money(data["amount"], "amount")
    if amount <= 0:
        raise ValidationError("amount must be greater than zero")

    credit = Credit(
        owner_id=owner_id,
        customer_name=customer_name,
        customer_phone=data.get("customer_phone"),
        amount=amount,
        remaining_amount=amount,
        credit_type="cash",
        notes=data.get("notes"),
        created_at=utcnow(),
    )
    db.session.add(credit)
    db.session.commit()
    return credit


def list_cash_credits(owner_id: int) -> list[Credit]:
    return (
        db.session.query(Credit)
        .filter_by(owner_id=owner_id, credit_type="cash")
        .order_by(Credit.created_at.desc(), Credit.id.desc())
        .all()
    )
