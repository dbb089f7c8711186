# Overview: Flask API routes for receiving customer payments.

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_feature
from ..permissions import Action, Feature
from ..services import payment_service
from ..validation import ValidationError, require_fields


payments_bp = Blueprint("payments", __name__, url_prefix="/api/payments")


@payments_bp.get("")
@require_auth
@require_feature(Feature.RECEIVE_PAYMENT, Action.VIEW)
def list_payments_route():
    payments = payment_service.list_payments(g.owner_id, customer_name=request.args.get("customer_name"))
    return jsonify({"payments": [payment.to_dict() for payment in payments]}), 200


@payments_bp.post("")
@require_auth
@require_feature(Feature.RECEIVE_PAYMENT, Action.CREATE)
def receive_payment_route():
    """
    Apply a payment to a customer's open invoices, oldest first.

    Body: customer_name, amount, optional customer_phone, paid_at, notes.
    """
    payload = request.get_json(silent=True) or {}

    try:
        require_fields(payload, "customer_name", "amount")
        entry = payment_service.receive_payment(
            g.owner_id,
            payload["customer_name"],
            payload["amount"],
            received_by_user_id=g.current_user.id,
            customer_phone=payload.get("customer_phone"),
            paid_at=payload.get("paid_at"),
            notes=payload.get("notes"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except payment_service.PaymentError as e:
        current_app.logger.warning("Payment failed for owner %s: %s", g.owner_id, e)
        return jsonify({"error": str(e), "retry": True}), 500

    return jsonify(entry.to_dict()), 201
