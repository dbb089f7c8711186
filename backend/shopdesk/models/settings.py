from __future__ import annotations

from ..extensions import db


class AppSettings(db.Model):
    """Per-shop preferences. One row per owning admin."""
    __tablename__ = "app_settings"
    __table_args__ = (
        db.UniqueConstraint("owner_id", name="uq_app_settings_owner"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # IANA zone name used for dashboard day boundaries
    timezone = db.Column(db.String(64), nullable=True)
    store_name = db.Column(db.String(255), nullable=True)
    currency = db.Column(db.String(8), nullable=False, default="PKR")

    def to_dict(self) -> dict:
        return {
            "owner_id": self.owner_id,
            "timezone": self.timezone,
            "store_name": self.store_name,
            "currency": self.currency,
        }
