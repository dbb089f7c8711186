from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


CREDIT_TYPES = {"cash", "sale"}


class Credit(db.Model):
    """Open balance a customer owes the shop."""
    __tablename__ = "credits"
    __table_args__ = (
        db.Index("ix_credits_owner_created", "owner_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    remaining_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # "cash" for money lent directly, "sale" for balances left on a sale
    credit_type = db.Column(db.String(16), nullable=False, default="sale")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "sale_id": self.sale_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "amount": float(self.amount or 0),
            "remaining_amount": float(self.remaining_amount or 0),
            "credit_type": self.credit_type,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
