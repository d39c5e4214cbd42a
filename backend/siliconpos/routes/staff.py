# Overview: Flask API routes for staff accounts (admin only).

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..models import User
from ..services import staff_service
from ..services.auth_service import PasswordValidationError
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_staff,
    validate_payload,
)

STAFF_POLICY = ModelValidationPolicy(
    writable_fields={"name", "username", "email", "role", "is_active"},
    required_on_create={"name", "username"},
)

staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


def _split_password(payload: dict) -> tuple[dict, object]:
    payload = dict(payload)
    return payload, payload.pop("password", None)


@staff_bp.get("")
@require_auth
@require_permission("MANAGE_STAFF")
def list_staff():
    try:
        users = staff_service.list_staff(
            role=request.args.get("role"),
            active_only=request.args.get("active_only", "").lower() == "true",
        )
        return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200
    except Exception:
        current_app.logger.exception("Failed to list staff")
        return jsonify({"error": "Internal server error"}), 500


@staff_bp.post("")
@require_auth
@require_permission("MANAGE_STAFF")
def create_staff_route():
    """Body: {name, username, password, email?, role?, is_active?}"""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    payload, password = _split_password(payload)
    if not password:
        return jsonify({"error": "Missing required fields: password"}), 400

    try:
        patch = validate_payload(model=User, payload=payload, policy=STAFF_POLICY, partial=False)
        enforce_rules_staff(patch)
        user = staff_service.create_staff(patch=patch, password=password)
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create staff member")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(user.to_dict()), 201


@staff_bp.patch("/<int:user_id>")
@require_auth
@require_permission("MANAGE_STAFF")
def update_staff_route(user_id: int):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    payload, password = _split_password(payload)

    try:
        patch = validate_payload(model=User, payload=payload, policy=STAFF_POLICY, partial=True)
        enforce_rules_staff(patch)
        user = staff_service.update_staff(
            user_id=user_id,
            patch=patch,
            acting_user_id=g.current_user.id,
            password=password or None,
        )
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update staff member")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(user.to_dict()), 200


@staff_bp.delete("/<int:user_id>")
@require_auth
@require_permission("MANAGE_STAFF")
def delete_staff_route(user_id: int):
    try:
        staff_service.delete_staff(user_id=user_id, acting_user_id=g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to delete staff member")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True}), 200
