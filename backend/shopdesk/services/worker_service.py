# Overview: Service-layer operations for shop workers and their permissions.

"""
Workers act on their admin's shop with exactly the grants their admin
gave them. Permission updates replace the whole set, like plan overrides.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import User, WorkerPermission, ROLE_WORKER
from ..permissions import Feature, FeatureMapError, FeaturePermission, parse_features_map
from ..validation import NotFoundError, ValidationError
from .auth_service import ensure_email_available, hash_password, normalize_email
from . import session_service


logger = logging.getLogger(__name__)


class WorkerError(Exception):
    """Raised when a worker permission update could not be saved."""
    pass


def _parse(permissions: dict | None) -> dict[Feature, FeaturePermission]:
    try:
        return parse_features_map(permissions, strict=True)
    except FeatureMapError as exc:
        raise ValidationError(str(exc))


def list_workers(admin_id: int) -> list[User]:
    return db.session.query(User).filter_by(admin_id=admin_id, role=ROLE_WORKER).order_by(User.id.asc()).all()


def get_worker(admin_id: int, worker_id: int) -> User:
    worker = db.session.query(User).filter_by(id=worker_id, admin_id=admin_id, role=ROLE_WORKER).first()
    if not worker:
        raise NotFoundError("Worker not found")
    return worker


def _permission_rows(admin_id: int, worker_id: int, grants: dict[Feature, FeaturePermission]) -> list[WorkerPermission]:
    return [
        WorkerPermission(
            worker_id=worker_id,
            admin_id=admin_id,
            feature=feature.value,
            can_view=grant.can_view,
            can_create=grant.can_create,
            can_edit=grant.can_edit,
            can_delete=grant.can_delete,
        )
        for feature, grant in grants.items()
    ]


def create_worker(
    admin_id: int,
    email: str,
    password: str,
    full_name: str | None = None,
    permissions: dict | None = None,
) -> User:
    """Create a worker under admin_id with an optional initial grant map."""
    grants = _parse(permissions)
    email = normalize_email(email)
    ensure_email_available(email)

    worker = User(
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        role=ROLE_WORKER,
        admin_id=admin_id,
        is_active=True,
    )
    db.session.add(worker)
    db.session.flush()
    db.session.add_all(_permission_rows(admin_id, worker.id, grants))
    db.session.commit()
    return worker


def get_worker_permissions(worker_id: int) -> list[WorkerPermission]:
    return db.session.query(WorkerPermission).filter_by(worker_id=worker_id).order_by(WorkerPermission.feature).all()


def set_worker_permissions(admin_id: int, worker_id: int, permissions: dict) -> list[WorkerPermission]:
    """
    Replace a worker's grants. Features left out of permissions lose access.
    """
    grants = _parse(permissions)
    get_worker(admin_id, worker_id)

    try:
        db.session.query(WorkerPermission).filter_by(worker_id=worker_id).delete(synchronize_session=False)
        db.session.flush()
        rows = _permission_rows(admin_id, worker_id, grants)
        db.session.add_all(rows)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Worker permission update failed for worker %s", worker_id)
        raise WorkerError("Permission update failed; retry the full update") from exc
    return rows


def set_worker_active(admin_id: int, worker_id: int, is_active: bool) -> User:
    """Enable or disable a worker. Disabling ends every open session at once."""
    worker = get_worker(admin_id, worker_id)
    worker.is_active = is_active
    db.session.commit()
    if not is_active:
        revoked = session_service.revoke_all_user_sessions(worker.id, "Worker deactivated")
        logger.info("Deactivated worker %s, revoked %s session(s)", worker.id, revoked)
    return worker
