# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .models import ROLE_ADMIN
from .permissions import Action, Feature
from .services import session_service, entitlement_service, security_service
from .services.secret_store import verify_super_admin_token


SUPER_ADMIN_HEADER = "X-Super-Admin-Token"


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'owner_id')


def _log_denial(event_type: str, reason: str, action: str | None = None, *, anonymous: bool = False) -> None:
    user = None if anonymous else getattr(g, "current_user", None)
    security_service.log_security_event(
        user_id=user.id if user else None,
        owner_id=None if anonymous else getattr(g, "owner_id", None),
        event_type=event_type,
        success=False,
        resource=request.path,
        action=action or request.method,
        reason=reason,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


def require_auth(f):
    """
    Require authentication and establish shop context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.owner_id: The owning admin's id (the user's own id for admins)
    - g.session_context: The full SessionContext object

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.owner_id = context.owner_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Shop admins only. Workers get 403."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        if g.current_user.role != ROLE_ADMIN:
            _log_denial("PERMISSION_DENIED", "Admin role required")
            return jsonify({"error": "Admin access required"}), 403

        return f(*args, **kwargs)

    return decorated_function


def require_feature(feature: Feature, action: Action):
    """
    Require ACTION on FEATURE for the current user.

    Entitlements are read fresh on every request, so a plan change or an
    expired subscription takes effect immediately.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not entitlement_service.user_has_permission(g.current_user.id, feature, action):
                _log_denial(
                    "PERMISSION_DENIED",
                    f"Missing {action.value} on {feature.value}",
                    action=action.value,
                )
                return jsonify({
                    "error": "Permission denied",
                    "feature": feature.value,
                    "action": action.value,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_super_admin(f):
    """Platform console access via the super-admin token header."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not verify_super_admin_token(request.headers.get(SUPER_ADMIN_HEADER)):
            _log_denial("SUPER_ADMIN_DENIED", "Invalid super-admin token", anonymous=True)
            return jsonify({"error": "Super-admin access required"}), 403

        return f(*args, **kwargs)

    return decorated_function
