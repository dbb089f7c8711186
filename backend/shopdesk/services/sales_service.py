# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sales Service

Records completed checkouts. Each line stores its own profit
(line total minus purchase cost) so reports never recompute it from
current product prices.

A sale left partly unpaid by a named customer also opens a sale-linked
Credit row for the collections screen. Reports read the balance from the
sale itself, so that row is never counted twice.

Invoice numbers are unique per shop. Generated numbers follow the shop's
sale count; a number taken by a concurrent checkout is retried.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Sale, SaleItem, Credit, Product
from ..validation import NotFoundError, ValidationError, parse_bool, parse_int, parse_money
from . import products_service
from .concurrency import RETRYABLE_ERRORS, lock_for_update, run_with_retry
from shopdesk.time_utils import utcnow


logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class SaleError(Exception):
    """Raised when a sale could not be saved; the caller may retry."""
    pass


def payment_status_for(final_amount: Decimal, paid_amount: Decimal) -> str:
    if paid_amount >= final_amount:
        return "paid"
    if paid_amount > 0:
        return "partial"
    return "unpaid"


def _format_invoice(sequence: int) -> str:
    return f"INV-{sequence:06d}"


def _invoice_taken(owner_id: int, invoice_number: str) -> bool:
    return db.session.query(Sale.id).filter_by(owner_id=owner_id, invoice_number=invoice_number).first() is not None


def _next_invoice_number(owner_id: int) -> str:
    sequence = db.session.query(Sale).filter(Sale.owner_id == owner_id).count() + 1
    # Hand-typed numbers can occupy slots ahead of the count
    while _invoice_taken(owner_id, _format_invoice(sequence)):
        sequence += 1
    return _format_invoice(sequence)


def _build_item(owner_id: int, line: dict) -> tuple[SaleItem, object]:
    """Build one SaleItem from a request line; returns (item, product or None)."""
    product = None
    if line.get("product_id") is not None:
        product = products_service.get_product(owner_id, parse_int(line["product_id"], "product_id"))

    name = (line.get("product_name") or (product.name if product else "")).strip()
    if not name:
        raise ValidationError("Each item needs a product_name or product_id")

    quantity = parse_int(line.get("quantity", 1), "quantity", minimum=1)
    default_price = product.selling_price if product else 0
    default_cost = product.purchase_price if product else 0
    unit_price = parse_money(line.get("unit_price", default_price), "unit_price")
    purchase_price = parse_money(line.get("purchase_price", default_cost), "purchase_price")
    is_return = parse_bool(line.get("is_return", False), "is_return")

    total_price = unit_price * quantity
    item = SaleItem(
        product_id=product.id if product else None,
        product_name=name,
        quantity=quantity,
        unit_price=unit_price,
        purchase_price=purchase_price,
        total_price=total_price,
        profit=total_price - purchase_price * quantity,
        is_return=is_return,
    )
    return item, product


def _price_lines(owner_id: int, data: dict):
    """Validate the item lines and discount; returns (built, total, discount, final)."""
    lines = data.get("items") or []
    if not isinstance(lines, list) or not lines:
        raise ValidationError("items must be a non-empty list")

    built = [_build_item(owner_id, line if isinstance(line, dict) else {}) for line in lines]

    total_amount = sum((item.total_price for item, _ in built if not item.is_return), ZERO)
    discount = parse_money(data.get("discount", 0), "discount")
    if discount > total_amount:
        raise ValidationError("discount cannot exceed the sale total")
    return built, total_amount, discount, total_amount - discount


def _stock_delta(item) -> int:
    """Stock change a line causes: sold lines take stock, return lines put it back."""
    return item.quantity if item.is_return else -item.quantity


def _attach_items(sale: Sale, built) -> None:
    for item, product in built:
        item.sale_id = sale.id
        db.session.add(item)
        if product is not None:
            products_service.adjust_stock(product, _stock_delta(item))


def _sync_sale_credit(sale: Sale, customer_phone=None) -> None:
    """Keep the sale-linked credit row equal to the sale's open balance."""
    credit = db.session.query(Credit).filter_by(sale_id=sale.id, credit_type="sale").first()
    balance = sale.final_amount - sale.paid_amount
    if balance <= 0:
        if credit is not None:
            db.session.delete(credit)
        return
    if credit is None:
        db.session.add(Credit(
            owner_id=sale.owner_id,
            sale_id=sale.id,
            customer_name=sale.customer_name,
            customer_phone=customer_phone,
            amount=balance,
            remaining_amount=balance,
            credit_type="sale",
            created_at=sale.created_at,
        ))
        return
    credit.customer_name = sale.customer_name
    if customer_phone:
        credit.customer_phone = customer_phone
    credit.amount = balance
    credit.remaining_amount = balance


def record_sale(owner_id: int, created_by_user_id: int, data: dict) -> Sale:
    """
    Create a sale with its lines in one transaction.

    Return-flagged lines are stored for tracking but add nothing to the
    total, and they put stock back instead of taking it.
    """
    requested = str(data.get("invoice_number") or "").strip() or None
    if requested and _invoice_taken(owner_id, requested):
        raise ValidationError(f"Invoice number {requested} is already in use")

    def _op():
        built, total_amount, discount, final_amount = _price_lines(owner_id, data)

        paid_raw = data.get("paid_amount")
        paid_amount = final_amount if paid_raw is None else parse_money(paid_raw, "paid_amount")
        paid_amount = min(paid_amount, final_amount)

        customer_name = (data.get("customer_name") or "").strip() or None
        status = payment_status_for(final_amount, paid_amount)
        if status != "paid" and not customer_name:
            raise ValidationError("customer_name is required for unpaid or partial sales")

        sale = Sale(
            owner_id=owner_id,
            created_by_user_id=created_by_user_id,
            invoice_number=requested or _next_invoice_number(owner_id),
            customer_name=customer_name,
            total_amount=total_amount,
            discount=discount,
            final_amount=final_amount,
            paid_amount=paid_amount,
            payment_status=status,
            created_at=utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        _attach_items(sale, built)
        _sync_sale_credit(sale, data.get("customer_phone"))

        db.session.commit()
        return sale

    retry_on = RETRYABLE_ERRORS if requested else RETRYABLE_ERRORS + (IntegrityError,)
    try:
        return run_with_retry(_op, retry_on=retry_on)
    except IntegrityError:
        db.session.rollback()
        if requested:
            raise ValidationError(f"Invoice number {requested} is already in use")
        logger.exception("Could not allocate an invoice number for owner %s", owner_id)
        raise SaleError("Could not allocate an invoice number")


def update_sale(owner_id: int, sale_id: int, data: dict) -> Sale:
    """
    Replace a sale's lines, discount and payment in one transaction.

    The stock effect of the old lines is reversed before the new lines are
    applied. created_at and invoice_number are kept. paid_amount defaults to
    what was already paid; additional_payment is added on top. The
    sale-linked credit follows the new balance.
    """
    def _op():
        sale = lock_for_update(
            db.session.query(Sale).filter_by(id=sale_id, owner_id=owner_id)
        ).first()
        if not sale or sale.deleted_at is not None:
            raise NotFoundError("Sale not found")

        built, total_amount, discount, final_amount = _price_lines(owner_id, data)

        paid_raw = data.get("paid_amount")
        paid_amount = sale.paid_amount if paid_raw is None else parse_money(paid_raw, "paid_amount")
        if data.get("additional_payment") is not None:
            paid_amount += parse_money(data["additional_payment"], "additional_payment")
        paid_amount = min(paid_amount, final_amount)

        customer_name = (data.get("customer_name", sale.customer_name) or "").strip() or None
        status = payment_status_for(final_amount, paid_amount)
        if status != "paid" and not customer_name:
            raise ValidationError("customer_name is required for unpaid or partial sales")

        for old in list(sale.items):
            if old.product_id is not None:
                product = db.session.get(Product, old.product_id)
                if product is not None:
                    products_service.adjust_stock(product, -_stock_delta(old))
            db.session.delete(old)
        db.session.flush()

        sale.customer_name = customer_name
        sale.total_amount = total_amount
        sale.discount = discount
        sale.final_amount = final_amount
        sale.paid_amount = paid_amount
        sale.payment_status = status

        _attach_items(sale, built)
        _sync_sale_credit(sale, data.get("customer_phone"))

        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Failed to update sale %s for owner %s", sale_id, owner_id)
        raise SaleError("Sale could not be updated")
    db.session.expire(sale, ["items"])
    logger.info("Sale %s updated for owner %s", sale.id, owner_id)
    return sale


def list_sales(owner_id: int, *, include_deleted: bool = False, limit: int = 200) -> list[Sale]:
    query = db.session.query(Sale).filter(Sale.owner_id == owner_id)
    if not include_deleted:
        query = query.filter(Sale.deleted_at.is_(None))
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit).all()


def soft_delete_sale(owner_id: int, sale_id: int) -> Sale:
    """Mark a sale deleted. Rows stay for audit; reports skip them."""
    sale = db.session.query(Sale).filter_by(id=sale_id, owner_id=owner_id).first()
    if not sale:
        raise NotFoundError("Sale not found")
    if sale.deleted_at is not None:
        return sale

    sale.deleted_at = utcnow()
    for item in sale.items:
        item.is_deleted = True
    db.session.query(Credit).filter_by(sale_id=sale.id).delete(synchronize_session=False)
    db.session.commit()
    logger.info("Sale %s soft-deleted for owner %s", sale.id, owner_id)
    return sale
