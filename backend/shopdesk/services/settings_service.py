from __future__ import annotations

import logging

from flask import current_app

from ..extensions import db
from ..models import AppSettings
from .timezone_service import DEFAULT_TIMEZONE, is_valid_timezone


logger = logging.getLogger(__name__)


class SettingsError(ValueError):
    pass


class SettingsValidationError(SettingsError):
    pass


def get_settings(owner_id: int) -> AppSettings:
    """Settings row for a shop, created on first access."""
    settings = db.session.query(AppSettings).filter_by(owner_id=owner_id).first()
    if settings is None:
        settings = AppSettings(owner_id=owner_id)
        db.session.add(settings)
        db.session.commit()
    return settings


def default_timezone() -> str:
    return current_app.config.get("DEFAULT_TIMEZONE") or DEFAULT_TIMEZONE


def owner_timezone(owner_id: int) -> str:
    """Stored zone name, or the deployment default when unset or unusable."""
    settings = db.session.query(AppSettings).filter_by(owner_id=owner_id).first()
    if settings and settings.timezone:
        if is_valid_timezone(settings.timezone):
            return settings.timezone
        logger.warning("Stored timezone %r for owner %s is invalid", settings.timezone, owner_id)
    return default_timezone()


def set_timezone(owner_id: int, timezone: str | None) -> AppSettings:
    name = (timezone or "").strip()
    if not is_valid_timezone(name):
        raise SettingsValidationError(f"Unknown timezone: {timezone!r}")

    settings = get_settings(owner_id)
    settings.timezone = name
    db.session.commit()
    logger.info("Timezone for owner %s set to %s", owner_id, name)
    return settings


def update_settings(owner_id: int, data: dict) -> AppSettings:
    settings = get_settings(owner_id)
    if "timezone" in data:
        name = (data.get("timezone") or "").strip()
        if not is_valid_timezone(name):
            raise SettingsValidationError(f"Unknown timezone: {data.get('timezone')!r}")
        settings.timezone = name
    if "store_name" in data:
        settings.store_name = (data.get("store_name") or "").strip() or None
    if "currency" in data:
        currency = (data.get("currency") or "").strip().upper()
        if not currency or len(currency) > 8:
            raise SettingsValidationError("currency must be a short code such as PKR")
        settings.currency = currency
    db.session.commit()
    return settings
