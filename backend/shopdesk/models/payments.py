from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


class PaymentLedger(db.Model):
    """
    One payment received from a customer against their open invoices.

    details lists how the amount was spread:
    [{"sale_id", "invoice_number", "applied"}], oldest invoice first.
    """
    __tablename__ = "payment_ledger"
    __table_args__ = (
        db.Index("ix_payment_ledger_owner_paid", "owner_id", "paid_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    received_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    details = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=True)

    paid_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "received_by_user_id": self.received_by_user_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "amount": float(self.amount or 0),
            "details": self.details or [],
            "notes": self.notes,
            "paid_at": to_utc_z(self.paid_at),
        }
