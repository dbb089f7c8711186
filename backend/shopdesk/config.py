# backend/shopdesk/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopdesk.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopdesk.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Fallback zone for dashboards when an owner has none or an invalid one
    DEFAULT_TIMEZONE = os.environ.get("DEFAULT_TIMEZONE", "Asia/Karachi")

    TRIAL_DAYS = int(os.environ.get("TRIAL_DAYS", "7"))

    # Super-admin console credential; read through the secret store, never directly
    SUPER_ADMIN_TOKEN = os.environ.get("SUPER_ADMIN_TOKEN")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
