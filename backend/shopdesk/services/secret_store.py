# Overview: Injected access to deployment secrets (super-admin credentials).

"""
Secrets are read through a SecretStore installed on the app at startup
(app.extensions["secret_store"]), never from module globals. Deployments can
install a vault-backed store; the default reads the Flask config.
"""

from __future__ import annotations

import hmac

from flask import current_app


SUPER_ADMIN_TOKEN = "SUPER_ADMIN_TOKEN"


class SecretStore:
    """Interface: return the secret for name, or None when unset."""

    def get(self, name: str) -> str | None:
        raise NotImplementedError


class ConfigSecretStore(SecretStore):
    def __init__(self, config):
        self._config = config

    def get(self, name: str) -> str | None:
        value = self._config.get(name)
        return value or None


class StaticSecretStore(SecretStore):
    """Fixed mapping; useful for tests and one-off scripts."""

    def __init__(self, secrets: dict[str, str] | None = None):
        self._secrets = dict(secrets or {})

    def get(self, name: str) -> str | None:
        return self._secrets.get(name) or None


def init_app(app, store: SecretStore | None = None) -> None:
    app.extensions["secret_store"] = store or ConfigSecretStore(app.config)


def get_secret_store() -> SecretStore:
    return current_app.extensions["secret_store"]


def verify_super_admin_token(token: str | None) -> bool:
    """Constant-time comparison. An unset secret disables the console."""
    expected = get_secret_store().get(SUPER_ADMIN_TOKEN)
    if not expected or not token:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), token.encode("utf-8"))
