from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


def _money(value) -> float:
    return float(value) if value is not None else 0.0


class Sale(db.Model):
    """
    Completed checkout. Never hard-deleted: deleted_at marks removal.

    A sale with a customer_name that is not fully paid is credit exposure
    of (final_amount - paid_amount).
    """
    __tablename__ = "sales"
    __table_args__ = (
        # Dashboard range scans are always owner + time
        db.Index("ix_sales_owner_created", "owner_id", "created_at"),
        db.UniqueConstraint("owner_id", "invoice_number", name="uq_sales_owner_invoice"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    invoice_number = db.Column(db.String(64), nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)

    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    final_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # paid, partial, unpaid
    payment_status = db.Column(db.String(16), nullable=False, default="paid")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "created_by_user_id": self.created_by_user_id,
            "invoice_number": self.invoice_number,
            "customer_name": self.customer_name,
            "total_amount": _money(self.total_amount),
            "discount": _money(self.discount),
            "final_amount": _money(self.final_amount),
            "paid_amount": _money(self.paid_amount),
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "deleted_at": to_utc_z(self.deleted_at) if self.deleted_at else None,
        }


class SaleItem(db.Model):
    """
    One line of a sale. profit is precomputed as revenue - cost.

    Return-flagged lines are tracking-only and never count toward revenue
    or profit.
    """
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    purchase_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    profit = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    is_return = db.Column(db.Boolean, nullable=False, default=False)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": _money(self.unit_price),
            "purchase_price": _money(self.purchase_price),
            "total_price": _money(self.total_price),
            "profit": _money(self.profit),
            "is_return": self.is_return,
            "is_deleted": self.is_deleted,
        }
