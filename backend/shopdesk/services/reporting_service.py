# Overview: Timezone-aware dashboard aggregation over already-fetched shop records.

"""
Report aggregation for the shop dashboard.

Every function here is pure: it takes record snapshots (see report_records)
and returns immutable result values. Fetching rows is dashboard_service's job.

Day boundaries are local midnights in the shop's timezone, returned as
naive UTC instants so they compare directly against stored timestamps.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from shopdesk.services.report_records import (
    CreditRecord,
    ExpenseRecord,
    ProductRecord,
    SaleItemRecord,
    SaleRecord,
    to_amount,
)
from shopdesk.services.timezone_service import (
    DEFAULT_TIMEZONE,
    end_of_day_utc,
    local_date,
    resolve_timezone,
    start_of_day_utc,
)
from shopdesk.time_utils import EPOCH, coerce_instant, normalize_utc, parse_iso_date, to_utc_z, utcnow


logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
TOP_LIMIT = 5
ZERO = Decimal("0")

RANGE_SELECTORS = (
    "today",
    "yesterday",
    "1week",
    "1month",
    "1year",
    "grand",
    "all",
    "7days",
    "30days",
    "90days",
    "custom",
)

ROLLING_DAYS = {"7days": 7, "30days": 30, "90days": 90}


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


@dataclass(frozen=True)
class DateRange:
    """Inclusive UTC bounds (naive) of a local-calendar range."""
    start: datetime
    end: datetime

    def contains(self, instant) -> bool:
        moment = coerce_instant(instant)
        if moment is None:
            return False
        return self.start <= moment <= self.end

    def to_dict(self) -> dict:
        return {"start": to_utc_z(self.start), "end": to_utc_z(self.end, millis=True)}


@dataclass(frozen=True)
class DayBucket:
    day: date
    label: str
    sales_total: Decimal = ZERO
    profit_total: Decimal = ZERO
    sale_count: int = 0

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "label": self.label,
            "sales": float(self.sales_total),
            "profit": float(self.profit_total),
            "count": self.sale_count,
        }


@dataclass(frozen=True)
class WeekdayBucket:
    day: date
    label: str
    total: Decimal = ZERO

    def to_dict(self) -> dict:
        return {"date": self.day.isoformat(), "day": self.label, "value": float(self.total)}


@dataclass(frozen=True)
class CategoryBucket:
    category: str
    count: int

    def to_dict(self) -> dict:
        return {"category": self.category, "count": self.count}


@dataclass(frozen=True)
class CategoryRevenue:
    category: str
    revenue: Decimal

    def to_dict(self) -> dict:
        return {"category": self.category, "revenue": float(self.revenue)}


@dataclass(frozen=True)
class DashboardSummary:
    date_range: DateRange
    total_sales: Decimal
    total_profit: Decimal
    total_cost: Decimal
    today_sales: Decimal
    total_credit: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    low_stock_items: int
    top_products: list = field(default_factory=list)
    top_customers: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "range": self.date_range.to_dict(),
            "total_sales": float(self.total_sales),
            "total_profit": float(self.total_profit),
            "total_cost": float(self.total_cost),
            "today_sales": float(self.today_sales),
            "total_credit": float(self.total_credit),
            "total_expenses": float(self.total_expenses),
            "net_profit": float(self.net_profit),
            "low_stock_items": self.low_stock_items,
            "top_products": self.top_products,
            "top_customers": self.top_customers,
        }


def _now(now: datetime | None) -> datetime:
    return normalize_utc(now) if now is not None else utcnow()


def _span(first: date, last: date, zone) -> DateRange:
    return DateRange(start=start_of_day_utc(first, zone), end=end_of_day_utc(last, zone))


def _parse_custom_day(value, label: str) -> date | None:
    try:
        return parse_iso_date(value)
    except (TypeError, ValueError):
        raise ReportError(f"{label} must be a date in YYYY-MM-DD format")


def resolve_range(
    selector: str | None,
    timezone=DEFAULT_TIMEZONE,
    custom_start=None,
    custom_end=None,
    *,
    now: datetime | None = None,
) -> DateRange:
    """
    Turn a named range plus a shop timezone into UTC bounds.

    today/yesterday cover one local day; 1week/1month/1year run from the
    start of the current local week (Monday), month or year through the end
    of today; grand runs from the Unix epoch. Unknown selectors mean today.
    """
    zone = resolve_timezone(timezone)
    today = local_date(_now(now), zone)
    key = selector.strip().lower() if isinstance(selector, str) else "today"

    if key == "yesterday":
        yesterday = today - timedelta(days=1)
        return _span(yesterday, yesterday, zone)

    if key == "1week":
        monday = today - timedelta(days=today.weekday())
        return _span(monday, today, zone)

    if key == "1month":
        return _span(today.replace(day=1), today, zone)

    if key == "1year":
        return _span(today.replace(month=1, day=1), today, zone)

    if key in ("grand", "all"):
        return DateRange(start=EPOCH, end=end_of_day_utc(today, zone))

    if key in ROLLING_DAYS:
        first = today - timedelta(days=ROLLING_DAYS[key] - 1)
        return _span(first, today, zone)

    if key == "custom":
        first = _parse_custom_day(custom_start, "start")
        last = _parse_custom_day(custom_end, "end")
        if first and last:
            if first > last:
                raise ReportError("start must not be after end")
            return _span(first, last, zone)
        if first:
            return _span(first, today, zone)
        if last:
            return DateRange(start=EPOCH, end=end_of_day_utc(last, zone))
        return _span(today, today, zone)

    if key != "today":
        logger.debug("Unknown range selector %r, using today", selector)
    return _span(today, today, zone)


def _day_label(day: date) -> str:
    return f"{day:%b} {day.day}"


def _sale_day(sale: SaleRecord, zone) -> date | None:
    instant = coerce_instant(sale.created_at)
    if instant is None:
        logger.debug("Skipping sale %s with malformed timestamp %r", sale.id, sale.created_at)
        return None
    return local_date(instant, zone)


def bucket_by_day(
    sales: Iterable[SaleRecord],
    items: Iterable[SaleItemRecord] = (),
    timezone=DEFAULT_TIMEZONE,
) -> list[DayBucket]:
    """
    Per-local-day sales and profit, oldest day first.

    Profit comes from the items of each bucketed sale; returned or deleted
    lines are ignored. Sales without a usable timestamp are skipped along
    with their items.
    """
    zone = resolve_timezone(timezone)
    sales_by_day: dict[date, Decimal] = {}
    counts: dict[date, int] = {}
    profit_by_day: dict[date, Decimal] = {}
    day_of_sale: dict[int, date] = {}

    for sale in sales:
        if sale.is_deleted:
            continue
        day = _sale_day(sale, zone)
        if day is None:
            continue
        sales_by_day[day] = sales_by_day.get(day, ZERO) + to_amount(sale.final_amount)
        counts[day] = counts.get(day, 0) + 1
        day_of_sale[sale.id] = day

    for item in items:
        if not item.counts_toward_totals:
            continue
        day = day_of_sale.get(item.sale_id)
        if day is None:
            continue
        profit_by_day[day] = profit_by_day.get(day, ZERO) + to_amount(item.profit)

    return [
        DayBucket(
            day=day,
            label=_day_label(day),
            sales_total=sales_by_day[day],
            profit_total=profit_by_day.get(day, ZERO),
            sale_count=counts[day],
        )
        for day in sorted(sales_by_day)
    ]


def bucket_weekly(
    sales: Iterable[SaleRecord],
    timezone=DEFAULT_TIMEZONE,
    *,
    now: datetime | None = None,
) -> list[WeekdayBucket]:
    """Seven zero-initialized buckets for the trailing local week ending today."""
    zone = resolve_timezone(timezone)
    today = local_date(_now(now), zone)
    days = [today - timedelta(days=back) for back in range(6, -1, -1)]
    totals = {day: ZERO for day in days}

    for sale in sales:
        if sale.is_deleted:
            continue
        day = _sale_day(sale, zone)
        if day in totals:
            totals[day] += to_amount(sale.final_amount)

    return [WeekdayBucket(day=day, label=f"{day:%a}", total=totals[day]) for day in days]


def _category_name(category) -> str:
    if isinstance(category, str) and category.strip():
        return category.strip()
    return UNCATEGORIZED


def bucket_by_category(products: Iterable[ProductRecord]) -> list[CategoryBucket]:
    """Product counts per category, largest first."""
    counts = Counter(_category_name(product.category) for product in products)
    ordered = sorted(counts.items(), key=lambda entry: (-entry[1], entry[0]))
    return [CategoryBucket(category=name, count=count) for name, count in ordered]


def category_revenue(
    items: Iterable[SaleItemRecord],
    products: Iterable[ProductRecord],
) -> list[CategoryRevenue]:
    """Line revenue per product category, largest first."""
    category_of = {product.id: _category_name(product.category) for product in products}
    revenue: dict[str, Decimal] = {}
    for item in items:
        if not item.counts_toward_totals:
            continue
        name = category_of.get(item.product_id, UNCATEGORIZED)
        revenue[name] = revenue.get(name, ZERO) + to_amount(item.total_price)
    ordered = sorted(revenue.items(), key=lambda entry: (-entry[1], entry[0]))
    return [CategoryRevenue(category=name, revenue=value) for name, value in ordered]


def _in_range(timestamp, date_range: DateRange | None) -> bool:
    if date_range is None:
        return True
    return date_range.contains(timestamp)


def compute_credit_exposure(
    sales: Iterable[SaleRecord],
    cash_credits: Iterable[CreditRecord],
    date_range: DateRange | None = None,
) -> Decimal:
    """
    Money customers still owe.

    Unpaid balances on customer sales plus open cash credits. Sale-linked
    credit rows are left out since their sale already carries the balance.
    """
    total = ZERO

    for sale in sales:
        if sale.is_deleted or not (sale.customer_name or "").strip():
            continue
        if (sale.payment_status or "").lower() == "paid":
            continue
        if not _in_range(sale.created_at, date_range):
            continue
        remaining = to_amount(sale.final_amount) - to_amount(sale.paid_amount)
        if remaining > 0:
            total += remaining

    for credit in cash_credits:
        if credit.credit_type == "sale":
            continue
        if not _in_range(credit.created_at, date_range):
            continue
        remaining = to_amount(credit.remaining_amount)
        if remaining > 0:
            total += remaining

    return total


def _top_products(items: list[SaleItemRecord]) -> list[dict]:
    stats: dict[str, dict] = {}
    for item in items:
        entry = stats.setdefault(item.product_name, {"quantity": 0, "revenue": ZERO})
        entry["quantity"] += item.quantity or 0
        entry["revenue"] += to_amount(item.total_price)
    ordered = sorted(stats.items(), key=lambda entry: entry[1]["revenue"], reverse=True)
    return [
        {"name": name, "quantity": data["quantity"], "revenue": float(data["revenue"])}
        for name, data in ordered[:TOP_LIMIT]
    ]


def _top_customers(sales: list[SaleRecord]) -> list[dict]:
    stats: dict[str, dict] = {}
    for sale in sales:
        name = (sale.customer_name or "").strip()
        if not name:
            continue
        entry = stats.setdefault(name, {"total_spent": ZERO, "orders": 0})
        entry["total_spent"] += to_amount(sale.final_amount)
        entry["orders"] += 1
    ordered = sorted(stats.items(), key=lambda entry: entry[1]["total_spent"], reverse=True)
    return [
        {"name": name, "total_spent": float(data["total_spent"]), "orders": data["orders"]}
        for name, data in ordered[:TOP_LIMIT]
    ]


def dashboard_summary(
    *,
    sales: Iterable[SaleRecord],
    items: Iterable[SaleItemRecord],
    products: Iterable[ProductRecord] = (),
    credits: Iterable[CreditRecord] = (),
    expenses: Iterable[ExpenseRecord] = (),
    date_range: DateRange,
    today_range: DateRange,
    low_stock_threshold: int = 10,
) -> DashboardSummary:
    """Headline dashboard figures for one shop and one range."""
    live_sales = [sale for sale in sales if not sale.is_deleted]
    in_range = [sale for sale in live_sales if date_range.contains(sale.created_at)]
    sale_ids = {sale.id for sale in in_range}
    counted_items = [
        item for item in items
        if item.sale_id in sale_ids and item.counts_toward_totals
    ]

    total_sales = sum((to_amount(sale.final_amount) for sale in in_range), ZERO)
    total_profit = sum((to_amount(item.profit) for item in counted_items), ZERO)
    total_cost = sum(
        (to_amount(item.purchase_price) * (item.quantity or 0) for item in counted_items),
        ZERO,
    )
    today_sales = sum(
        (to_amount(sale.final_amount) for sale in live_sales if today_range.contains(sale.created_at)),
        ZERO,
    )
    total_expenses = sum(
        (to_amount(expense.amount) for expense in expenses if date_range.contains(expense.expense_date)),
        ZERO,
    )

    return DashboardSummary(
        date_range=date_range,
        total_sales=total_sales,
        total_profit=total_profit,
        total_cost=total_cost,
        today_sales=today_sales,
        total_credit=compute_credit_exposure(in_range, credits, date_range),
        total_expenses=total_expenses,
        net_profit=total_profit - total_expenses,
        low_stock_items=sum(1 for product in products if (product.stock_quantity or 0) < low_stock_threshold),
        top_products=_top_products(counted_items),
        top_customers=_top_customers(in_range),
    )
