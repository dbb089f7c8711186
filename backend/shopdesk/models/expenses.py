from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


class Expense(db.Model):
    """Shop running cost, subtracted from profit on the dashboard."""
    __tablename__ = "expenses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    category = db.Column(db.String(128), nullable=True)
    description = db.Column(db.Text, nullable=True)
    expense_date = db.Column(db.DateTime(timezone=True), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "amount": float(self.amount or 0),
            "category": self.category,
            "description": self.description,
            "expense_date": to_utc_z(self.expense_date),
        }
