# Overview: Dashboard statistics endpoint.

from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth, require_permission
from ..services import reporting_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
@require_permission("VIEW_DASHBOARD")
def dashboard_stats():
    """Today's totals, catalog counts, low-stock count, recent sales and the 7-day series."""
    try:
        return jsonify(reporting_service.get_dashboard_stats()), 200
    except Exception:
        current_app.logger.exception("Failed to build dashboard stats")
        return jsonify({"error": "Internal server error"}), 500
