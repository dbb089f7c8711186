# Overview: Feature entitlement resolution for admins and workers.

"""
Entitlement Resolver

Answers "may this account perform ACTION on FEATURE" from a Principal
snapshot: role, subscription state and permission rows.

DESIGN PRINCIPLES:
- Pure resolution: has_permission() does no I/O and has no side effects
- Fail closed: unknown roles, features, actions and failed lookups deny
- No caching: load_principal() reads the tables fresh on every check
- Expired admins lose everything, whatever their override rows say
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import User, Subscription, AdminFeatureOverride, WorkerPermission, ROLE_ADMIN, ROLE_WORKER
from ..permissions import Action, Feature, FeaturePermission
from shopdesk.time_utils import coerce_instant, normalize_utc, utcnow


logger = logging.getLogger(__name__)


class SubscriptionState(str, Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    EXPIRED = "expired"
    FREE = "free"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """The parts of a Subscription row the resolver needs."""
    status: str
    is_trial: bool = False
    end_date: datetime | None = None
    plan_id: int | None = None

    @classmethod
    def from_model(cls, subscription: Subscription) -> "SubscriptionSnapshot":
        return cls(
            status=subscription.status,
            is_trial=bool(subscription.is_trial),
            end_date=subscription.end_date,
            plan_id=subscription.plan_id,
        )


@dataclass(frozen=True)
class Principal:
    """
    Everything needed to answer a permission question for one account.

    lookup_failed marks a snapshot whose tables could not be read; such a
    principal is denied every feature.
    """
    user_id: int | None
    role: str | None
    subscription: SubscriptionSnapshot | None = None
    overrides: Mapping[Feature, FeaturePermission] = field(default_factory=dict)
    worker_permissions: Mapping[Feature, FeaturePermission] = field(default_factory=dict)
    lookup_failed: bool = False


def effective_status(
    subscription: SubscriptionSnapshot | Subscription | None,
    now: datetime | None = None,
) -> SubscriptionState | None:
    """
    Subscription state after applying expiry.

    free never expires. Any other status with an end_date in the past is
    expired. Unrecognized stored statuses are treated as expired.
    """
    if subscription is None:
        return None

    status = (subscription.status or "").lower()
    if status == SubscriptionState.FREE.value:
        return SubscriptionState.FREE

    moment = normalize_utc(now) if now is not None else utcnow()
    end_date = coerce_instant(subscription.end_date)
    if status == SubscriptionState.EXPIRED.value or (end_date is not None and end_date < moment):
        return SubscriptionState.EXPIRED

    if status == SubscriptionState.ACTIVE.value:
        return SubscriptionState.TRIAL if subscription.is_trial else SubscriptionState.ACTIVE
    if status == SubscriptionState.CANCELLED.value:
        return SubscriptionState.CANCELLED

    return SubscriptionState.EXPIRED


def is_expired(subscription, now: datetime | None = None) -> bool:
    return effective_status(subscription, now) is SubscriptionState.EXPIRED


def has_permission(principal: Principal, feature, action, *, now: datetime | None = None) -> bool:
    """
    Core permission check.

    Admins: expired subscription denies all; with any override rows the row
    for the feature decides (no row: deny); with none, full access.
    Workers: their WorkerPermission row decides (no row: deny).
    """
    if principal is None or principal.lookup_failed:
        return False

    parsed_feature = Feature.parse(feature)
    parsed_action = Action.parse(action)
    if parsed_feature is None or parsed_action is None:
        return False

    if principal.role == ROLE_ADMIN:
        if is_expired(principal.subscription, now):
            return False
        if principal.overrides:
            grant = principal.overrides.get(parsed_feature)
            return grant.allows(parsed_action) if grant else False
        return True

    if principal.role == ROLE_WORKER:
        grant = principal.worker_permissions.get(parsed_feature)
        return grant.allows(parsed_action) if grant else False

    return False


def effective_permissions(principal: Principal, *, now: datetime | None = None) -> dict:
    """Full feature x action matrix, for clients that gate many actions at once."""
    return {
        feature.value: {
            action.value: has_permission(principal, feature, action, now=now)
            for action in Action
        }
        for feature in Feature
    }


def _grant_from_row(row) -> FeaturePermission:
    return FeaturePermission(
        can_view=bool(row.can_view),
        can_create=bool(row.can_create),
        can_edit=bool(row.can_edit),
        can_delete=bool(row.can_delete),
    )


def _grants_by_feature(rows) -> dict[Feature, FeaturePermission]:
    grants: dict[Feature, FeaturePermission] = {}
    for row in rows:
        feature = Feature.parse(row.feature)
        if feature is None:
            logger.warning("Ignoring permission row %s for unknown feature %r", row.id, row.feature)
            continue
        grants[feature] = _grant_from_row(row)
    return grants


def load_principal(user_id: int) -> Principal:
    """
    Read a fresh Principal snapshot for user_id.

    A database failure is logged and produces a lookup_failed principal,
    so the caller's permission check denies.
    """
    try:
        user = db.session.query(User).filter_by(id=user_id).first()
        if not user or not user.is_active:
            return Principal(user_id=user_id, role=None)

        if user.role == ROLE_ADMIN:
            subscription = db.session.query(Subscription).filter_by(admin_id=user.id).first()
            overrides = db.session.query(AdminFeatureOverride).filter_by(admin_id=user.id).all()
            return Principal(
                user_id=user.id,
                role=ROLE_ADMIN,
                subscription=SubscriptionSnapshot.from_model(subscription) if subscription else None,
                overrides=_grants_by_feature(overrides),
            )

        if user.role == ROLE_WORKER:
            rows = db.session.query(WorkerPermission).filter_by(worker_id=user.id).all()
            return Principal(
                user_id=user.id,
                role=ROLE_WORKER,
                worker_permissions=_grants_by_feature(rows),
            )

        return Principal(user_id=user.id, role=user.role)
    except SQLAlchemyError:
        logger.exception("Permission lookup failed for user %s; denying", user_id)
        return Principal(user_id=user_id, role=None, lookup_failed=True)


def user_has_permission(user_id: int, feature, action, *, now: datetime | None = None) -> bool:
    """Load and resolve in one call. Used by decorators and manual checks."""
    return has_permission(load_principal(user_id), feature, action, now=now)


class PermissionDeniedError(Exception):
    """Raised when a user lacks the required feature action."""
    pass


def require_permission(user_id: int, feature, action, *, now: datetime | None = None) -> None:
    """Raise PermissionDeniedError unless user_id may perform action on feature."""
    if not user_has_permission(user_id, feature, action, now=now):
        raise PermissionDeniedError(
            f"Missing {getattr(action, 'value', action)} on {getattr(feature, 'value', feature)}"
        )
