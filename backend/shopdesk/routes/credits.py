# Overview: Flask API routes for customer credits.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_feature
from ..permissions import Action, Feature
from ..services import credit_service
from ..validation import ValidationError


credits_bp = Blueprint("credits", __name__, url_prefix="/api/credits")


@credits_bp.get("")
@require_auth
@require_feature(Feature.CREDITS, Action.VIEW)
def list_credits_route():
    open_only = request.args.get("open", "").lower() in ("1", "true", "yes")
    credits = credit_service.list_credits(g.owner_id, open_only=open_only)
    return jsonify({"credits": [credit.to_dict() for credit in credits]}), 200


@credits_bp.get("/cash")
@require_auth
@require_feature(Feature.CASH_CREDIT, Action.VIEW)
def list_cash_credits_route():
    credits = credit_service.list_cash_credits(g.owner_id)
    return jsonify({"credits": [credit.to_dict() for credit in credits]}), 200


@credits_bp.post("/cash")
@require_auth
@require_feature(Feature.CASH_CREDIT, Action.CREATE)
def create_cash_credit_route():
    payload = request.get_json(silent=True) or {}
    try:
        credit = credit_service.create_cash_credit(g.owner_id, payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(credit.to_dict()), 201
