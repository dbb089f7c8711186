# Overview: Platform console routes for plans, subscriptions and admin overrides.

"""
Super-admin console.

Guarded by the X-Super-Admin-Token header, checked against the secret store.
Plan assignment and override edits replace an admin's whole override set in
one transaction; a failure leaves the previous set intact and returns 500 so
the caller can retry.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_super_admin
from ..extensions import db
from ..models import User, ROLE_ADMIN
from ..permissions import Feature, features_to_dict, get_feature_definition
from ..services import subscription_service, security_service
from ..services.subscription_service import PlanAssignmentError, PlanNotFoundError, SubscriptionError
from ..validation import ValidationError


super_admin_bp = Blueprint("super_admin", __name__, url_prefix="/api/super-admin")


@super_admin_bp.get("/plans")
@require_super_admin
def list_plans_route():
    active_only = request.args.get("active", "").lower() in ("1", "true", "yes")
    plans = subscription_service.list_plans(active_only=active_only)
    return jsonify({"plans": [plan.to_dict() for plan in plans]}), 200


@super_admin_bp.post("/plans")
@require_super_admin
def create_plan_route():
    payload = request.get_json(silent=True) or {}
    try:
        plan = subscription_service.create_plan(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(plan.to_dict()), 201


@super_admin_bp.put("/plans/<int:plan_id>")
@require_super_admin
def update_plan_route(plan_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        plan = subscription_service.update_plan(plan_id, payload)
    except PlanNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(plan.to_dict()), 200


@super_admin_bp.delete("/plans/<int:plan_id>")
@require_super_admin
def delete_plan_route(plan_id: int):
    try:
        subscription_service.delete_plan(plan_id)
    except PlanNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"message": "Plan deleted"}), 200


@super_admin_bp.get("/admins")
@require_super_admin
def list_admins_route():
    admins = db.session.query(User).filter_by(role=ROLE_ADMIN).order_by(User.id.asc()).all()
    return jsonify({
        "admins": [
            {**admin.to_dict(), **subscription_service.subscription_summary(admin.id)}
            for admin in admins
        ]
    }), 200


@super_admin_bp.post("/subscriptions/assign")
@require_super_admin
def assign_plan_route():
    """Body: {"admin_id": 1, "plan_id": 2}"""
    payload = request.get_json(silent=True) or {}
    admin_id = payload.get("admin_id")
    plan_id = payload.get("plan_id")
    if not isinstance(admin_id, int) or not isinstance(plan_id, int):
        return jsonify({"error": "admin_id and plan_id must be integers"}), 400

    try:
        subscription = subscription_service.assign_plan(admin_id, plan_id)
    except PlanNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except PlanAssignmentError as e:
        current_app.logger.warning("Plan assignment failed for admin %s: %s", admin_id, e)
        return jsonify({"error": str(e), "retry": True}), 500
    except SubscriptionError as e:
        return jsonify({"error": str(e)}), 400

    security_service.log_security_event(
        user_id=admin_id,
        owner_id=admin_id,
        event_type="PLAN_ASSIGNED",
        success=True,
        resource=request.path,
        action="ASSIGN",
        reason=f"plan {plan_id}",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify(subscription.to_dict()), 200


@super_admin_bp.get("/admins/<int:admin_id>/overrides")
@require_super_admin
def get_overrides_route(admin_id: int):
    try:
        overrides = subscription_service.get_admin_overrides(admin_id)
    except SubscriptionError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"admin_id": admin_id, "features": features_to_dict(overrides)}), 200


@super_admin_bp.put("/admins/<int:admin_id>/overrides")
@require_super_admin
def replace_overrides_route(admin_id: int):
    """
    Replace an admin's override set.

    Body: {"features": {"sales": {"view": true}, ...}}. An empty map removes
    every override, which returns the admin to full access.
    """
    payload = request.get_json(silent=True) or {}
    features = payload.get("features")
    if not isinstance(features, dict):
        return jsonify({"error": "features must be an object"}), 400

    try:
        overrides = subscription_service.replace_admin_overrides(admin_id, features)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except PlanAssignmentError as e:
        return jsonify({"error": str(e), "retry": True}), 500
    except SubscriptionError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"admin_id": admin_id, "features": features_to_dict(overrides)}), 200


@super_admin_bp.get("/features")
@require_super_admin
def feature_catalog_route():
    """Feature list with display labels, for building plan editors."""
    return jsonify({"features": [get_feature_definition(feature) for feature in Feature]}), 200


@super_admin_bp.get("/security-events")
@require_super_admin
def security_events_route():
    user_id = request.args.get("user_id", type=int)
    limit = min(request.args.get("limit", 200, type=int), 1000)
    events = security_service.recent_events(
        user_id=user_id,
        event_type=request.args.get("event_type"),
        limit=limit,
    )
    return jsonify({"events": [event.to_dict() for event in events]}), 200
