# backend/siliconpos/routes/system.py
"""
System health endpoint.
"""

import time

from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import Product, SessionToken, User
from siliconpos.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Row counts of core tables, with latency. Never raises."""
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        product_count = db.session.query(Product).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "products": product_count,
                "active_sessions": active_sessions,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }), 200 if healthy else 503
