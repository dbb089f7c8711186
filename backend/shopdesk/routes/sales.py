# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales routes.

- Creating a sale is invoicing: requires invoice create; editing one requires invoice edit
- Listing requires sales view; deleting requires sales delete
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_feature
from ..permissions import Action, Feature
from ..services import sales_service
from ..validation import NotFoundError, ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_feature(Feature.SALES, Action.VIEW)
def list_sales_route():
    include_deleted = request.args.get("include_deleted", "").lower() in ("1", "true", "yes")
    sales = sales_service.list_sales(g.owner_id, include_deleted=include_deleted)
    return jsonify({"sales": [sale.to_dict() for sale in sales]}), 200


@sales_bp.post("")
@require_auth
@require_feature(Feature.INVOICE, Action.CREATE)
def create_sale_route():
    """
    Record a sale.

    Body: items (list of product_id or product_name, quantity, unit_price,
    optional purchase_price, is_return), discount, paid_amount, customer_name.
    """
    payload = request.get_json(silent=True) or {}

    try:
        sale = sales_service.record_sale(g.owner_id, g.current_user.id, payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except sales_service.SaleError as e:
        return jsonify({"error": str(e), "retry": True}), 500
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500

    result = sale.to_dict()
    result["items"] = [item.to_dict() for item in sale.items]
    return jsonify(result), 201


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_feature(Feature.INVOICE, Action.EDIT)
def update_sale_route(sale_id: int):
    """
    Replace a sale's lines and payment. Same body as create, plus optional
    additional_payment; created_at and invoice_number never change.
    """
    payload = request.get_json(silent=True) or {}

    try:
        sale = sales_service.update_sale(g.owner_id, sale_id, payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except sales_service.SaleError as e:
        return jsonify({"error": str(e), "retry": True}), 500

    result = sale.to_dict()
    result["items"] = [item.to_dict() for item in sale.items]
    return jsonify(result), 200


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_feature(Feature.SALES, Action.DELETE)
def delete_sale_route(sale_id: int):
    try:
        sale = sales_service.soft_delete_sale(g.owner_id, sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(sale.to_dict()), 200
