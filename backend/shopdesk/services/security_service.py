# Overview: Append-only security audit trail.

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent
from shopdesk.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    owner_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - SUPER_ADMIN_DENIED
    - PLAN_ASSIGNED
    """
    event = SecurityEvent(
        user_id=user_id,
        owner_id=owner_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def recent_events(*, user_id: int | None = None, event_type: str | None = None, limit: int = 200) -> list[SecurityEvent]:
    query = db.session.query(SecurityEvent).order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc())
    if user_id is not None:
        query = query.filter(SecurityEvent.user_id == user_id)
    if event_type:
        query = query.filter(SecurityEvent.event_type == event_type)
    return query.limit(limit).all()


def cleanup_security_events(retention_days: int = 90) -> int:
    """Delete events older than the retention window. Returns rows deleted."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(SecurityEvent.occurred_at < cutoff).delete(
        synchronize_session=False
    )
    db.session.commit()
    return deleted
