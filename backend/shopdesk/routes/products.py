# Overview: Flask API routes for products operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_feature
from ..permissions import Action, Feature
from ..services import products_service
from ..validation import ValidationError


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_feature(Feature.INVENTORY, Action.VIEW)
def list_products_route():
    """
    Query params:
    - category: exact category filter
    - low_stock: "true" for items below the low-stock threshold
    """
    products = products_service.list_products(
        g.owner_id,
        category=request.args.get("category") or None,
        low_stock_only=request.args.get("low_stock", "").lower() in ("1", "true", "yes"),
    )
    return jsonify({"products": [product.to_dict() for product in products]}), 200


@products_bp.post("")
@require_auth
@require_feature(Feature.INVENTORY, Action.CREATE)
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(g.owner_id, payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(product.to_dict()), 201
