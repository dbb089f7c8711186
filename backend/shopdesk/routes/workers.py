# Overview: Flask API routes for worker management; parses input and returns JSON responses.

"""
Worker management routes.

Admins create workers and edit their grants. Workers never manage other
workers, whatever grants they hold.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_admin, require_feature
from ..permissions import Action, Feature
from ..services import worker_service
from ..services.auth_service import AccountError, PasswordValidationError
from ..services.worker_service import WorkerError
from ..validation import NotFoundError, ValidationError


workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")


def _worker_payload(worker) -> dict:
    result = worker.to_dict()
    result["permissions"] = [row.to_dict() for row in worker_service.get_worker_permissions(worker.id)]
    return result


@workers_bp.get("")
@require_auth
@require_admin
@require_feature(Feature.WORKERS, Action.VIEW)
def list_workers_route():
    workers = worker_service.list_workers(g.owner_id)
    return jsonify({"workers": [_worker_payload(worker) for worker in workers]}), 200


@workers_bp.post("")
@require_auth
@require_admin
@require_feature(Feature.WORKERS, Action.CREATE)
def create_worker_route():
    payload = request.get_json(silent=True) or {}
    if not all([payload.get("email"), payload.get("password")]):
        return jsonify({"error": "email and password required"}), 400

    try:
        worker = worker_service.create_worker(
            g.owner_id,
            payload.get("email"),
            payload.get("password"),
            payload.get("full_name"),
            payload.get("permissions"),
        )
    except (ValidationError, PasswordValidationError, AccountError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(_worker_payload(worker)), 201


@workers_bp.put("/<int:worker_id>/permissions")
@require_auth
@require_admin
@require_feature(Feature.WORKERS, Action.EDIT)
def set_worker_permissions_route(worker_id: int):
    """
    Replace a worker's grants.

    Body: {"permissions": {"sales": {"view": true, ...}, ...}}
    Features missing from the map lose all access.
    """
    payload = request.get_json(silent=True) or {}
    permissions = payload.get("permissions")
    if not isinstance(permissions, dict):
        return jsonify({"error": "permissions must be an object"}), 400

    try:
        rows = worker_service.set_worker_permissions(g.owner_id, worker_id, permissions)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except WorkerError as e:
        current_app.logger.warning("Worker permission update failed: %s", e)
        return jsonify({"error": str(e)}), 500

    return jsonify({"worker_id": worker_id, "permissions": [row.to_dict() for row in rows]}), 200


@workers_bp.put("/<int:worker_id>/active")
@require_auth
@require_admin
@require_feature(Feature.WORKERS, Action.EDIT)
def set_worker_active_route(worker_id: int):
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload.get("is_active"), bool):
        return jsonify({"error": "is_active must be true or false"}), 400

    try:
        worker = worker_service.set_worker_active(g.owner_id, worker_id, payload["is_active"])
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(worker.to_dict()), 200
