# Overview: Per-user notification feed (low-stock alerts).

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import notification_service
from ..validation import NotFoundError, ValidationError, coerce_int

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications():
    """
    Query params:
    - unread_only: "true" to hide read notifications
    - limit: int (default 50, max 200)
    """
    limit = min(max(request.args.get("limit", 50, type=int), 1), 200)
    try:
        result = notification_service.list_notifications(
            g.current_user.id,
            unread_only=request.args.get("unread_only", "").lower() == "true",
            limit=limit,
        )
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list notifications")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.patch("/read")
@require_auth
def mark_read():
    """Body: {"id": 12} marks one; an empty body marks all of the caller's notifications."""
    data = request.get_json(silent=True) or {}
    try:
        notification_id = data.get("id")
        if notification_id is not None:
            notification_id = coerce_int("id", notification_id)
        updated = notification_service.mark_read(g.current_user.id, notification_id)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to mark notifications read")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True, "updated": updated}), 200
