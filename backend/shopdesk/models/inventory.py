from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


LOW_STOCK_THRESHOLD = 10


class Product(db.Model):
    """Stock item owned by one shop."""
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    category = db.Column(db.String(128), nullable=True)

    purchase_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    selling_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_low_stock(self) -> bool:
        return (self.stock_quantity or 0) < LOW_STOCK_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "purchase_price": float(self.purchase_price or 0),
            "selling_price": float(self.selling_price or 0),
            "stock_quantity": self.stock_quantity,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
        }
