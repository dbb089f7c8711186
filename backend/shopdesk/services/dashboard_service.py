# Overview: Loads shop rows for the dashboard and hands them to the report aggregator.

"""
Dashboard Service

The persistence side of reporting: fetches one owner's rows, snapshots them
as records and calls the pure functions in reporting_service. The timezone
comes from the request, then the shop's settings, then the deployment
default.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..extensions import db
from ..models import Sale, SaleItem, Credit, Product, Expense
from .report_records import CreditRecord, ExpenseRecord, ProductRecord, SaleItemRecord, SaleRecord
from . import reporting_service
from .reporting_service import DateRange
from .settings_service import owner_timezone
from .timezone_service import is_valid_timezone


logger = logging.getLogger(__name__)


def _timezone(owner_id: int, timezone: str | None) -> str:
    if timezone and is_valid_timezone(timezone):
        return timezone.strip()
    if timezone:
        logger.warning("Ignoring invalid timezone %r for owner %s", timezone, owner_id)
    return owner_timezone(owner_id)


def load_sales(owner_id: int, date_range: DateRange | None = None) -> list[SaleRecord]:
    query = db.session.query(Sale).filter(Sale.owner_id == owner_id, Sale.deleted_at.is_(None))
    if date_range is not None:
        query = query.filter(Sale.created_at >= date_range.start, Sale.created_at <= date_range.end)
    return [SaleRecord.from_model(sale) for sale in query.all()]


def load_items(sale_ids) -> list[SaleItemRecord]:
    sale_ids = list(sale_ids)
    if not sale_ids:
        return []
    rows = db.session.query(SaleItem).filter(SaleItem.sale_id.in_(sale_ids)).all()
    return [SaleItemRecord.from_model(item) for item in rows]


def load_cash_credits(owner_id: int) -> list[CreditRecord]:
    rows = db.session.query(Credit).filter_by(owner_id=owner_id, credit_type="cash").all()
    return [CreditRecord.from_model(credit) for credit in rows]


def load_products(owner_id: int) -> list[ProductRecord]:
    rows = db.session.query(Product).filter_by(owner_id=owner_id).all()
    return [ProductRecord.from_model(product) for product in rows]


def load_expenses(owner_id: int, date_range: DateRange | None = None) -> list[ExpenseRecord]:
    query = db.session.query(Expense).filter(Expense.owner_id == owner_id)
    if date_range is not None:
        query = query.filter(Expense.expense_date >= date_range.start, Expense.expense_date <= date_range.end)
    return [ExpenseRecord.from_model(expense) for expense in query.all()]


def resolve_owner_range(
    owner_id: int,
    selector: str | None,
    *,
    timezone: str | None = None,
    start=None,
    end=None,
    now: datetime | None = None,
) -> DateRange:
    return reporting_service.resolve_range(
        selector or "today",
        _timezone(owner_id, timezone),
        start,
        end,
        now=now,
    )


def summary(owner_id: int, selector: str | None, *, timezone=None, start=None, end=None, now=None) -> dict:
    zone = _timezone(owner_id, timezone)
    date_range = reporting_service.resolve_range(selector or "today", zone, start, end, now=now)
    today_range = reporting_service.resolve_range("today", zone, now=now)

    covering = DateRange(
        start=min(date_range.start, today_range.start),
        end=max(date_range.end, today_range.end),
    )
    sales = load_sales(owner_id, covering)
    result = reporting_service.dashboard_summary(
        sales=sales,
        items=load_items(sale.id for sale in sales if date_range.contains(sale.created_at)),
        products=load_products(owner_id),
        credits=load_cash_credits(owner_id),
        expenses=load_expenses(owner_id, date_range),
        date_range=date_range,
        today_range=today_range,
    )
    return result.to_dict()


def daily(owner_id: int, selector: str | None, *, timezone=None, start=None, end=None, now=None) -> dict:
    zone = _timezone(owner_id, timezone)
    date_range = reporting_service.resolve_range(selector or "1week", zone, start, end, now=now)
    sales = load_sales(owner_id, date_range)
    buckets = reporting_service.bucket_by_day(sales, load_items(sale.id for sale in sales), zone)
    return {"range": date_range.to_dict(), "days": [bucket.to_dict() for bucket in buckets]}


def weekly(owner_id: int, *, timezone=None, now=None) -> dict:
    zone = _timezone(owner_id, timezone)
    window = reporting_service.resolve_range("7days", zone, now=now)
    buckets = reporting_service.bucket_weekly(load_sales(owner_id, window), zone, now=now)
    return {"range": window.to_dict(), "days": [bucket.to_dict() for bucket in buckets]}


def categories(owner_id: int, selector: str | None = None, *, timezone=None, start=None, end=None, now=None) -> dict:
    zone = _timezone(owner_id, timezone)
    date_range = reporting_service.resolve_range(selector or "grand", zone, start, end, now=now)
    products = load_products(owner_id)
    sales = load_sales(owner_id, date_range)
    return {
        "range": date_range.to_dict(),
        "stock": [bucket.to_dict() for bucket in reporting_service.bucket_by_category(products)],
        "revenue": [
            entry.to_dict()
            for entry in reporting_service.category_revenue(load_items(sale.id for sale in sales), products)
        ],
    }


def credit_exposure(owner_id: int, selector: str | None = None, *, timezone=None, start=None, end=None, now=None) -> dict:
    date_range = None
    if selector:
        date_range = resolve_owner_range(owner_id, selector, timezone=timezone, start=start, end=end, now=now)
    total = reporting_service.compute_credit_exposure(
        load_sales(owner_id, date_range),
        load_cash_credits(owner_id),
        date_range,
    )
    return {"range": date_range.to_dict() if date_range else None, "total_credit": float(total)}
