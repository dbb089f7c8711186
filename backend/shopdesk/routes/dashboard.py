# Overview: Flask API routes for dashboard reports; parses input and returns JSON responses.

"""
Dashboard report routes.

Every report is scoped to the caller's shop (g.owner_id). Query params:
- range: today, yesterday, 1week, 1month, 1year, grand, 7days, 30days,
  90days or custom
- start / end: YYYY-MM-DD, used when range=custom
- timezone: optional IANA zone; defaults to the shop's setting

SECURITY: Requires sales view permission.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_feature
from ..permissions import Action, Feature
from ..services import dashboard_service
from ..services.reporting_service import ReportError


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


def _range_args() -> dict:
    return {
        "timezone": request.args.get("timezone") or None,
        "start": request.args.get("start") or None,
        "end": request.args.get("end") or None,
    }


def _run(report, *args, **kwargs):
    try:
        return jsonify(report(g.owner_id, *args, **kwargs)), 200
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build dashboard report")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/range")
@require_auth
@require_feature(Feature.SALES, Action.VIEW)
def range_route():
    """Resolved UTC bounds for a selector; lets clients query other stores consistently."""
    def report(owner_id, selector, **kwargs):
        return dashboard_service.resolve_owner_range(owner_id, selector, **kwargs).to_dict()
    return _run(report, request.args.get("range"), **_range_args())


@dashboard_bp.get("/summary")
@require_auth
@require_feature(Feature.SALES, Action.VIEW)
def summary_route():
    return _run(dashboard_service.summary, request.args.get("range"), **_range_args())


@dashboard_bp.get("/daily")
@require_auth
@require_feature(Feature.SALES, Action.VIEW)
def daily_route():
    return _run(dashboard_service.daily, request.args.get("range"), **_range_args())


@dashboard_bp.get("/weekly")
@require_auth
@require_feature(Feature.SALES, Action.VIEW)
def weekly_route():
    return _run(dashboard_service.weekly, timezone=request.args.get("timezone") or None)


@dashboard_bp.get("/categories")
@require_auth
@require_feature(Feature.INVENTORY, Action.VIEW)
def categories_route():
    return _run(dashboard_service.categories, request.args.get("range"), **_range_args())


@dashboard_bp.get("/credits")
@require_auth
@require_feature(Feature.CREDITS, Action.VIEW)
def credits_route():
    return _run(dashboard_service.credit_exposure, request.args.get("range"), **_range_args())
