from flask import Blueprint, current_app, jsonify, request

from siliconpos.decorators import require_auth, require_permission
from siliconpos.services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_report():
    # Unknown periods fall back to "week"; the effective one is echoed back
    period = request.args.get("period", reporting_service.DEFAULT_PERIOD)

    try:
        report = reporting_service.get_sales_report(period)
        return jsonify(report), 200
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500
