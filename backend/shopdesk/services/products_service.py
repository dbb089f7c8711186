# Overview: Service-layer operations for products; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import NotFoundError, ValidationError, parse_int, parse_money, require_fields


def list_products(owner_id: int, *, category: str | None = None, low_stock_only: bool = False) -> list[Product]:
    query = db.session.query(Product).filter(Product.owner_id == owner_id)
    if category:
        query = query.filter(Product.category == category)
    products = query.order_by(Product.name.asc(), Product.id.asc()).all()
    if low_stock_only:
        products = [product for product in products if product.is_low_stock]
    return products


def get_product(owner_id: int, product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, owner_id=owner_id).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def create_product(owner_id: int, data: dict) -> Product:
    require_fields(data, "name")
    name = str(data["name"]).strip()
    if not name:
        raise ValidationError("name is required")

    product = Product(
        owner_id=owner_id,
        name=name,
        sku=(data.get("sku") or None),
        category=(str(data["category"]).strip() or None) if data.get("category") else None,
        purchase_price=parse_money(data.get("purchase_price", 0), "purchase_price"),
        selling_price=parse_money(data.get("selling_price", 0), "selling_price"),
        stock_quantity=parse_int(data.get("stock_quantity", 0), "stock_quantity", minimum=0),
    )
    db.session.add(product)
    db.session.commit()
    return product


def adjust_stock(product: Product, delta: int) -> None:
    """Apply a stock movement without committing. Stock never goes negative."""
    product.stock_quantity = max(0, (product.stock_quantity or 0) + delta)
