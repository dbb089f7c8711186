# Overview: Flask API routes for shop settings.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_admin
from ..services import settings_service
from ..services.settings_service import SettingsValidationError


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings_route():
    settings = settings_service.get_settings(g.owner_id)
    result = settings.to_dict()
    result["effective_timezone"] = settings.timezone or settings_service.default_timezone()
    return jsonify(result), 200


@settings_bp.put("")
@require_auth
@require_admin
def update_settings_route():
    payload = request.get_json(silent=True) or {}
    try:
        settings = settings_service.update_settings(g.owner_id, payload)
    except SettingsValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(settings.to_dict()), 200


@settings_bp.put("/timezone")
@require_auth
@require_admin
def set_timezone_route():
    """Body: {"timezone": "Asia/Karachi"}. Unknown zone names are rejected."""
    payload = request.get_json(silent=True) or {}
    try:
        settings = settings_service.set_timezone(g.owner_id, payload.get("timezone"))
    except SettingsValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(settings.to_dict()), 200
