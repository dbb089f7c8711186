# Overview: Service-layer operations for customer payments against open invoices.

"""
Payment Service

A payment received from a customer is spread over their open invoices,
oldest first. Each invoice takes min(remaining payment, its balance).
The sale's paid_amount and status move with it, its sale-linked credit
shrinks to the new balance, and one payment_ledger row records the split.
Everything lands in a single commit.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Credit, PaymentLedger, Sale
from ..validation import ValidationError, parse_money
from .concurrency import lock_for_update, run_with_retry
from .sales_service import payment_status_for
from shopdesk.time_utils import parse_iso_datetime, utcnow


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class PaymentError(Exception):
    """Raised when a payment could not be saved."""
    pass


def _balance(sale: Sale) -> Decimal:
    return (sale.final_amount or ZERO) - (sale.paid_amount or ZERO)


def _open_sales_query(owner_id: int, customer_name: str | None = None):
    query = db.session.query(Sale).filter(
        Sale.owner_id == owner_id,
        Sale.deleted_at.is_(None),
        Sale.customer_name.isnot(None),
        Sale.final_amount > Sale.paid_amount,
    )
    if customer_name is not None:
        query = query.filter(Sale.customer_name == customer_name)
    return query.order_by(Sale.created_at.asc(), Sale.id.asc())


def open_invoices(owner_id: int, customer_name: str) -> list[Sale]:
    """A customer's sales with money still owed, oldest first."""
    return _open_sales_query(owner_id, (customer_name or "").strip()).all()


def list_customers(owner_id: int) -> list[dict]:
    """Every named customer on the shop's sales, with what they still owe."""
    customers: dict[str, dict] = {}
    sales = (
        db.session.query(Sale)
        .filter(
            Sale.owner_id == owner_id,
            Sale.deleted_at.is_(None),
            Sale.customer_name.isnot(None),
        )
        .order_by(Sale.created_at.asc(), Sale.id.asc())
        .all()
    )
    for sale in sales:
        entry = customers.setdefault(sale.customer_name, {
            "customer_name": sale.customer_name,
            "invoices": 0,
            "open_invoices": 0,
            "outstanding": ZERO,
            "last_sale_at": None,
        })
        entry["invoices"] += 1
        balance = _balance(sale)
        if balance > 0:
            entry["open_invoices"] += 1
            entry["outstanding"] += balance
        entry["last_sale_at"] = sale.created_at

    return sorted(customers.values(), key=lambda c: c["customer_name"].lower())


def receive_payment(
    owner_id: int,
    customer_name: str,
    amount,
    *,
    received_by_user_id: int | None = None,
    customer_phone: str | None = None,
    paid_at=None,
    notes: str | None = None,
) -> PaymentLedger:
    """
    Apply a customer payment to their open invoices, oldest first.

    Raises ValidationError when the customer owes nothing or the amount is
    more than they owe. Nothing is written unless every row commits.
    """
    customer_name = (customer_name or "").strip()
    if not customer_name:
        raise ValidationError("customer_name is required")
    amount = parse_money(amount, "amount")
    if amount <= 0:
        raise ValidationError("amount must be greater than zero")

    if paid_at is None or paid_at == "":
        paid_at = utcnow()
    elif isinstance(paid_at, str):
        try:
            paid_at = parse_iso_datetime(paid_at)
        except ValueError:
            raise ValidationError("paid_at must be an ISO-8601 datetime")

    def _op():
        sales = lock_for_update(_open_sales_query(owner_id, customer_name)).all()
        if not sales:
            raise ValidationError(f"{customer_name} has no unpaid invoices")

        outstanding = sum((_balance(sale) for sale in sales), ZERO)
        if amount > outstanding:
            raise ValidationError(f"amount exceeds the outstanding balance of {outstanding}")

        remaining = amount
        details = []
        for sale in sales:
            if remaining <= 0:
                break
            applied = min(remaining, _balance(sale))
            sale.paid_amount = sale.paid_amount + applied
            sale.payment_status = payment_status_for(sale.final_amount, sale.paid_amount)
            remaining -= applied

            credit = db.session.query(Credit).filter_by(sale_id=sale.id, credit_type="sale").first()
            if credit is not None:
                credit.remaining_amount = max(_balance(sale), ZERO)

            details.append({
                "sale_id": sale.id,
                "invoice_number": sale.invoice_number,
                "applied": float(applied),
            })

        entry = PaymentLedger(
            owner_id=owner_id,
            received_by_user_id=received_by_user_id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            amount=amount,
            details=details,
            notes=notes,
            paid_at=paid_at,
        )
        db.session.add(entry)
        db.session.commit()
        return entry

    try:
        entry = run_with_retry(_op)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to record payment for owner %s", owner_id)
        raise PaymentError("Payment could not be saved")

    logger.info(
        "Payment %s of %s from %r applied to %d invoice(s) for owner %s",
        entry.id, amount, customer_name, len(entry.details), owner_id,
    )
    return entry


def list_payments(owner_id: int, *, customer_name: str | None = None, limit: int = 100) -> list[PaymentLedger]:
    query = db.session.query(PaymentLedger).filter(PaymentLedger.owner_id == owner_id)
    if customer_name:
        query = query.filter(PaymentLedger.customer_name == customer_name.strip())
    return query.order_by(PaymentLedger.paid_at.desc(), PaymentLedger.id.desc()).limit(limit).all()
