# Overview: Plain record types the report aggregator consumes.

"""
Immutable snapshots of shop rows, detached from the ORM session.

The aggregator only reads these, so it can run over rows from the database,
from an offline cache, or from a test fixture alike.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union


Timestamp = Union[datetime, str, None]


def to_amount(value) -> Decimal:
    """Money as Decimal. Missing or unparseable amounts count as zero."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("0")


@dataclass(frozen=True)
class SaleRecord:
    id: int
    created_at: Timestamp
    final_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    payment_status: str = "paid"
    customer_name: Optional[str] = None
    deleted_at: Timestamp = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_model(cls, sale) -> "SaleRecord":
        return cls(
            id=sale.id,
            created_at=sale.created_at,
            final_amount=to_amount(sale.final_amount),
            paid_amount=to_amount(sale.paid_amount),
            payment_status=sale.payment_status,
            customer_name=sale.customer_name,
            deleted_at=sale.deleted_at,
        )


@dataclass(frozen=True)
class SaleItemRecord:
    sale_id: int
    product_name: str
    quantity: int = 1
    unit_price: Decimal = Decimal("0")
    purchase_price: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    is_return: bool = False
    is_deleted: bool = False
    product_id: Optional[int] = None

    @property
    def counts_toward_totals(self) -> bool:
        return not self.is_return and not self.is_deleted

    @classmethod
    def from_model(cls, item) -> "SaleItemRecord":
        return cls(
            sale_id=item.sale_id,
            product_name=item.product_name,
            quantity=item.quantity or 0,
            unit_price=to_amount(item.unit_price),
            purchase_price=to_amount(item.purchase_price),
            total_price=to_amount(item.total_price),
            profit=to_amount(item.profit),
            is_return=bool(item.is_return),
            is_deleted=bool(item.is_deleted),
            product_id=item.product_id,
        )


@dataclass(frozen=True)
class CreditRecord:
    id: int
    remaining_amount: Decimal
    created_at: Timestamp
    credit_type: str = "cash"

    @classmethod
    def from_model(cls, credit) -> "CreditRecord":
        return cls(
            id=credit.id,
            remaining_amount=to_amount(credit.remaining_amount),
            created_at=credit.created_at,
            credit_type=credit.credit_type,
        )


@dataclass(frozen=True)
class ProductRecord:
    id: int
    name: str
    category: Optional[str] = None
    stock_quantity: int = 0

    @classmethod
    def from_model(cls, product) -> "ProductRecord":
        return cls(
            id=product.id,
            name=product.name,
            category=product.category,
            stock_quantity=product.stock_quantity or 0,
        )


@dataclass(frozen=True)
class ExpenseRecord:
    amount: Decimal
    expense_date: Timestamp

    @classmethod
    def from_model(cls, expense) -> "ExpenseRecord":
        return cls(amount=to_amount(expense.amount), expense_date=expense.expense_date)
