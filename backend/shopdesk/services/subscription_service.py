# Overview: Service-layer operations for plans and subscriptions; encapsulates business logic and database work.

"""
Subscription and Plan Management

A Plan bundles a price, a duration and a feature grant map. Assigning a
plan to an admin (re)binds the admin's single Subscription row and makes
the admin's AdminFeatureOverride rows an exact copy of the plan's map.

ATOMICITY: the subscription upsert, the override delete and the override
inserts commit together or not at all. On failure the session is rolled
back and PlanAssignmentError is raised; callers retry the whole assignment.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Plan, Subscription, AdminFeatureOverride, User, ROLE_ADMIN
from ..permissions import (
    DEFAULT_PLAN_FEATURES,
    Feature,
    FeatureMapError,
    FeaturePermission,
    features_to_dict,
    parse_features_map,
)
from ..validation import ValidationError, parse_bool, parse_int, parse_money
from .entitlement_service import SubscriptionState, effective_status
from shopdesk.time_utils import normalize_utc, utcnow


logger = logging.getLogger(__name__)

# Plan durations are sold in 30-day months
DAYS_PER_MONTH = 30

PLAN_FIELDS = {
    "name",
    "description",
    "monthly_price",
    "yearly_price",
    "duration_months",
    "trial_days",
    "is_lifetime",
    "is_active",
    "features",
}


class SubscriptionError(Exception):
    """Raised when a subscription operation is not possible."""
    pass


class PlanNotFoundError(SubscriptionError):
    pass


class PlanAssignmentError(SubscriptionError):
    """The assignment did not commit; no partial override state was kept."""
    pass


def _now(now: datetime | None) -> datetime:
    return normalize_utc(now) if now is not None else utcnow()


def _require_admin(admin_id: int) -> User:
    admin = db.session.query(User).filter_by(id=admin_id, role=ROLE_ADMIN).first()
    if not admin:
        raise SubscriptionError("Admin not found")
    return admin


def _clean_plan_fields(data: dict) -> dict:
    unknown = set(data) - PLAN_FIELDS
    if unknown:
        raise ValidationError(f"Unknown plan fields: {', '.join(sorted(unknown))}")

    cleaned: dict = {}
    if "name" in data:
        name = (data["name"] or "").strip()
        if not name:
            raise ValidationError("name is required")
        cleaned["name"] = name
    if "description" in data:
        cleaned["description"] = data["description"]
    for money_field in ("monthly_price", "yearly_price"):
        if money_field in data:
            cleaned[money_field] = parse_money(data[money_field], money_field)
    if "duration_months" in data:
        cleaned["duration_months"] = parse_int(data["duration_months"], "duration_months", minimum=1)
    if "trial_days" in data:
        cleaned["trial_days"] = parse_int(data["trial_days"], "trial_days", minimum=0)
    for flag in ("is_lifetime", "is_active"):
        if flag in data:
            cleaned[flag] = parse_bool(data[flag], flag)
    if "features" in data:
        try:
            cleaned["features"] = features_to_dict(parse_features_map(data["features"], strict=True))
        except FeatureMapError as exc:
            raise ValidationError(str(exc))
    return cleaned


def list_plans(*, active_only: bool = False) -> list[Plan]:
    query = db.session.query(Plan)
    if active_only:
        query = query.filter(Plan.is_active.is_(True))
    return query.order_by(Plan.created_at.asc(), Plan.id.asc()).all()


def get_plan(plan_id: int) -> Plan:
    plan = db.session.query(Plan).filter_by(id=plan_id).first()
    if not plan:
        raise PlanNotFoundError("Plan not found")
    return plan


def create_plan(data: dict) -> Plan:
    """Create a plan. Without a features map the plan grants everything."""
    cleaned = _clean_plan_fields(data)
    if "name" not in cleaned:
        raise ValidationError("name is required")
    cleaned.setdefault("features", features_to_dict(DEFAULT_PLAN_FEATURES))

    plan = Plan(**cleaned)
    db.session.add(plan)
    db.session.commit()
    return plan


def update_plan(plan_id: int, data: dict) -> Plan:
    """
    Update plan fields.

    Admins already on the plan keep their overrides until the plan is
    assigned again.
    """
    plan = get_plan(plan_id)
    for key, value in _clean_plan_fields(data).items():
        setattr(plan, key, value)
    db.session.commit()
    return plan


def delete_plan(plan_id: int) -> None:
    """Delete a plan, detaching it from any subscription bound to it."""
    plan = get_plan(plan_id)
    db.session.query(Subscription).filter_by(plan_id=plan.id).update(
        {"plan_id": None}, synchronize_session=False
    )
    db.session.delete(plan)
    db.session.commit()


def get_subscription(admin_id: int) -> Subscription | None:
    return db.session.query(Subscription).filter_by(admin_id=admin_id).first()


def compute_end_date(plan: Plan, start: datetime) -> datetime | None:
    if plan.is_lifetime:
        return None
    return start + timedelta(days=(plan.duration_months or 1) * DAYS_PER_MONTH)


def get_admin_overrides(admin_id: int) -> dict[Feature, FeaturePermission]:
    _require_admin(admin_id)
    rows = db.session.query(AdminFeatureOverride).filter_by(admin_id=admin_id).all()
    return parse_features_map(
        {row.feature: {
            "view": row.can_view,
            "create": row.can_create,
            "edit": row.can_edit,
            "delete": row.can_delete,
        } for row in rows},
        strict=False,
    )


def _override_row(admin_id: int, feature: Feature, grant: FeaturePermission) -> AdminFeatureOverride:
    return AdminFeatureOverride(
        admin_id=admin_id,
        feature=feature.value,
        can_view=grant.can_view,
        can_create=grant.can_create,
        can_edit=grant.can_edit,
        can_delete=grant.can_delete,
    )


def _replace_overrides(admin_id: int, features: dict[Feature, FeaturePermission]) -> None:
    """Delete-then-insert inside the caller's transaction. Does not commit."""
    db.session.query(AdminFeatureOverride).filter_by(admin_id=admin_id).delete(
        synchronize_session=False
    )
    db.session.flush()
    for feature, grant in features.items():
        db.session.add(_override_row(admin_id, feature, grant))
    db.session.flush()


def replace_admin_overrides(admin_id: int, features: dict) -> dict[Feature, FeaturePermission]:
    """
    Replace an admin's override set with features (super-admin manual edit).

    Same all-or-nothing contract as assign_plan.
    """
    try:
        parsed = parse_features_map(features, strict=True)
    except FeatureMapError as exc:
        raise ValidationError(str(exc))

    _require_admin(admin_id)
    try:
        _replace_overrides(admin_id, parsed)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Override replacement failed for admin %s", admin_id)
        raise PlanAssignmentError("Override replacement failed; retry the full update") from exc
    return parsed


def assign_plan(admin_id: int, plan_id: int, *, now: datetime | None = None) -> Subscription:
    """
    Bind admin_id to plan_id and sync the plan's features to overrides.

    Lifetime plans become status "free" with no end date; other plans are
    "active" for duration_months * 30 days. Treated as a fresh binding,
    so any trial flag is cleared.
    """
    moment = _now(now)
    plan = get_plan(plan_id)
    _require_admin(admin_id)
    features = parse_features_map(plan.features, strict=False)

    try:
        subscription = get_subscription(admin_id)
        if subscription is None:
            subscription = Subscription(admin_id=admin_id)
            db.session.add(subscription)

        subscription.plan_id = plan.id
        subscription.status = SubscriptionState.FREE.value if plan.is_lifetime else SubscriptionState.ACTIVE.value
        subscription.is_trial = False
        subscription.start_date = moment
        subscription.end_date = compute_end_date(plan, moment)
        subscription.billing_cycle = "lifetime" if plan.is_lifetime else "monthly"
        subscription.amount_paid = plan.monthly_price or 0
        subscription.updated_at = moment

        _replace_overrides(admin_id, features)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Plan %s assignment failed for admin %s", plan_id, admin_id)
        raise PlanAssignmentError("Plan assignment failed; retry the full assignment") from exc

    logger.info("Assigned plan %s to admin %s", plan.id, admin_id)
    return subscription


def start_trial(admin_id: int, *, days: int, now: datetime | None = None) -> Subscription:
    """
    Open a trial for a new admin.

    Trials have no overrides, so the admin has full access until end_date.
    """
    moment = _now(now)
    _require_admin(admin_id)
    if get_subscription(admin_id) is not None:
        raise SubscriptionError("Admin already has a subscription")

    subscription = Subscription(
        admin_id=admin_id,
        plan_id=None,
        status=SubscriptionState.ACTIVE.value,
        is_trial=True,
        start_date=moment,
        end_date=moment + timedelta(days=days),
        billing_cycle="monthly",
        amount_paid=0,
        updated_at=moment,
    )
    db.session.add(subscription)
    db.session.commit()
    return subscription


def expire_subscriptions(*, now: datetime | None = None) -> int:
    """
    Persist expiry for lapsed subscriptions. Returns the number updated.

    Resolution never depends on this sweep; it only keeps stored status
    in line with end_date for listings.
    """
    moment = _now(now)
    lapsed = db.session.query(Subscription).filter(
        Subscription.status.in_([SubscriptionState.ACTIVE.value, SubscriptionState.CANCELLED.value]),
        Subscription.end_date.isnot(None),
        Subscription.end_date < moment,
    ).all()

    for subscription in lapsed:
        subscription.status = SubscriptionState.EXPIRED.value
        subscription.updated_at = moment
    db.session.commit()
    return len(lapsed)


def subscription_summary(admin_id: int, *, now: datetime | None = None) -> dict:
    """Subscription row plus its effective state and days remaining."""
    moment = _now(now)
    subscription = get_subscription(admin_id)
    if subscription is None:
        return {"subscription": None, "effective_status": None, "days_left": None}

    state = effective_status(subscription, moment)
    days_left = None
    if subscription.end_date is not None and state is not SubscriptionState.FREE:
        days_left = max(0, (normalize_utc(subscription.end_date) - moment).days)

    return {
        "subscription": subscription.to_dict(),
        "effective_status": state.value if state else None,
        "days_left": days_left,
    }
