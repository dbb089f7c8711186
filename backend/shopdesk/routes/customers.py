# Overview: Flask API routes for the customer directory.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_feature
from ..permissions import Action, Feature
from ..services import payment_service
from shopdesk.time_utils import to_utc_z


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_feature(Feature.CUSTOMERS, Action.VIEW)
def list_customers_route():
    customers = payment_service.list_customers(g.owner_id)
    for customer in customers:
        customer["outstanding"] = float(customer["outstanding"])
        customer["last_sale_at"] = to_utc_z(customer["last_sale_at"])
    return jsonify({"customers": customers}), 200


@customers_bp.get("/invoices")
@require_auth
@require_feature(Feature.CUSTOMERS, Action.VIEW)
def open_invoices_route():
    name = (request.args.get("name") or "").strip()
    if not name:
        return jsonify({"error": "name is required"}), 400
    sales = payment_service.open_invoices(g.owner_id, name)
    return jsonify({"customer_name": name, "invoices": [sale.to_dict() for sale in sales]}), 200
