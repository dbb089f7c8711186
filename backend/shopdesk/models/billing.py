from __future__ import annotations

from ..extensions import db
from shopdesk.time_utils import to_utc_z


SUBSCRIPTION_STATUSES = {"active", "expired", "free", "cancelled"}
BILLING_CYCLES = {"monthly", "yearly", "lifetime"}


def _money(value) -> float:
    return float(value) if value is not None else 0.0


class Plan(db.Model):
    """
    Purchasable subscription tier.

    features maps feature name -> {"view", "create", "edit", "delete"} flags.
    Assigning the plan copies that map into admin_feature_overrides.
    """
    __tablename__ = "plans"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)

    monthly_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    yearly_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    duration_months = db.Column(db.Integer, nullable=False, default=1)
    trial_days = db.Column(db.Integer, nullable=False, default=0)

    is_lifetime = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    features = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "monthly_price": _money(self.monthly_price),
            "yearly_price": _money(self.yearly_price),
            "duration_months": self.duration_months,
            "trial_days": self.trial_days,
            "is_lifetime": self.is_lifetime,
            "is_active": self.is_active,
            "features": self.features or {},
            "created_at": to_utc_z(self.created_at),
        }


class Subscription(db.Model):
    """
    One admin's current plan binding. At most one row per admin.

    end_date in the past means effectively expired regardless of the stored
    status, except for "free".
    """
    __tablename__ = "subscriptions"
    __table_args__ = (
        db.UniqueConstraint("admin_id", name="uq_subscriptions_admin"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    plan_id = db.Column(db.Integer, db.ForeignKey("plans.id", ondelete="SET NULL"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="active")
    is_trial = db.Column(db.Boolean, nullable=False, default=False)

    start_date = db.Column(db.DateTime(timezone=True), nullable=False)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)

    billing_cycle = db.Column(db.String(16), nullable=False, default="monthly")
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    plan = db.relationship("Plan")
    admin = db.relationship("User", backref=db.backref("subscription", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "plan_id": self.plan_id,
            "plan_name": self.plan.name if self.plan else None,
            "status": self.status,
            "is_trial": self.is_trial,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date) if self.end_date else None,
            "billing_cycle": self.billing_cycle,
            "amount_paid": _money(self.amount_paid),
        }


class AdminFeatureOverride(db.Model):
    """
    Per-admin feature grant synced from the assigned plan.

    When an admin has any rows, a missing row for a feature means no access.
    """
    __tablename__ = "admin_feature_overrides"
    __table_args__ = (
        db.UniqueConstraint("admin_id", "feature", name="uq_admin_feature_overrides_admin_feature"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    feature = db.Column(db.String(32), nullable=False)

    can_view = db.Column(db.Boolean, nullable=False, default=False)
    can_create = db.Column(db.Boolean, nullable=False, default=False)
    can_edit = db.Column(db.Boolean, nullable=False, default=False)
    can_delete = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "feature": self.feature,
            "can_view": self.can_view,
            "can_create": self.can_create,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
        }
