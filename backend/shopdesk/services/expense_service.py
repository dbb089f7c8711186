# Overview: Service-layer operations for shop expenses.

from __future__ import annotations

from ..extensions import db
from ..models import Expense
from ..validation import ValidationError, parse_money, require_fields
from shopdesk.time_utils import coerce_instant, utcnow


def list_expenses(owner_id: int) -> list[Expense]:
    return (
        db.session.query(Expense)
        .filter(Expense.owner_id == owner_id)
        .order_by(Expense.expense_date.desc(), Expense.id.desc())
        .all()
    )


def create_expense(owner_id: int, data: dict) -> Expense:
    require_fields(data, "amount")
    amount = parse_money(data["amount"], "amount")
    if amount <= 0:
        raise ValidationError("amount must be greater than zero")

    expense_date = utcnow()
    if data.get("expense_date"):
        expense_date = coerce_instant(data["expense_date"])
        if expense_date is None:
            raise ValidationError("expense_date must be an ISO-8601 timestamp")

    expense = Expense(
        owner_id=owner_id,
        amount=amount,
        category=data.get("category"),
        description=data.get("description"),
        expense_date=expense_date,
    )
    db.session.add(expense)
    db.session.commit()
    return expense
