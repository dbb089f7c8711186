# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on signup
- Failed logins recorded in the security audit trail
- Session management with token-based auth
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import security_service
from ..services import entitlement_service
from ..services import subscription_service
from ..services.auth_service import AccountError, AuthError, PasswordValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token) -> dict:
    return {
        "user": user.to_dict(),
        "permissions": entitlement_service.effective_permissions(
            entitlement_service.load_principal(user.id)
        ),
        "token": token,
        "session": session.to_dict(),
        "owner_id": user.owner_id,
    }


@auth_bp.post("/signup")
def signup_route():
    """
    Create a shop admin account on a trial subscription.

    Workers are never self-registered; their admin creates them.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    try:
        user = auth_service.create_admin(
            email,
            password,
            data.get("full_name"),
            trial_days=current_app.config.get("TRIAL_DAYS", 7),
            timezone=data.get("timezone"),
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except PasswordValidationError as e:
        return jsonify({"error": str(e)}), 400
    except AccountError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to sign up admin")
        return jsonify({"error": "Internal server error"}), 500

    payload = _session_payload(user, session, token)
    payload["message"] = "Signup successful"
    return jsonify(payload), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        return jsonify({"error": "email and password required"}), 400

    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    try:
        user = auth_service.login(email, password)
    except AuthError as e:
        security_service.log_security_event(
            user_id=None,
            event_type="LOGIN_FAILED",
            success=False,
            resource=request.path,
            action="LOGIN",
            reason=str(e),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return jsonify({"error": "Invalid credentials"}), 401

    try:
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    payload = _session_payload(user, session, token)
    payload["message"] = "Login successful"
    return jsonify(payload), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    WHY: Explicit logout prevents token reuse.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return jsonify({"error": "Authorization header required"}), 401

    token = auth_header.split(" ", 1)[1]
    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """
    Current user, subscription state and the full permission matrix.

    WHY: The UI hides actions the user cannot perform; the server still
    checks every request.
    """
    user = g.current_user
    principal = entitlement_service.load_principal(user.id)
    subscription = subscription_service.subscription_summary(user.owner_id)

    return jsonify({
        "user": user.to_dict(),
        "owner_id": g.owner_id,
        "subscription": subscription,
        "permissions": entitlement_service.effective_permissions(principal),
    }), 200
