# Overview: Flask API routes for shop expenses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_feature
from ..permissions import Action, Feature
from ..services import expense_service
from ..validation import ValidationError


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_feature(Feature.EXPENSES, Action.VIEW)
def list_expenses_route():
    expenses = expense_service.list_expenses(g.owner_id)
    return jsonify({"expenses": [expense.to_dict() for expense in expenses]}), 200


@expenses_bp.post("")
@require_auth
@require_feature(Feature.EXPENSES, Action.CREATE)
def create_expense_route():
    payload = request.get_json(silent=True) or {}
    try:
        expense = expense_service.create_expense(g.owner_id, payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(expense.to_dict()), 201
