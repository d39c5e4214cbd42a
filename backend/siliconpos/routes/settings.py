# Overview: Flask API routes for the caller's own preferences.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..models import UserSetting
from ..services import settings_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_settings,
    validate_payload,
)

SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields={"theme", "email_notifications", "push_notifications"},
)

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def get_settings():
    """Created with defaults on first read."""
    try:
        settings = settings_service.get_or_create_settings(g.current_user.id)
        return jsonify(settings.to_dict()), 200
    except Exception:
        current_app.logger.exception("Failed to load settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.patch("")
@require_auth
def update_settings():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=UserSetting, payload=payload, policy=SETTINGS_POLICY, partial=True)
        enforce_rules_settings(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        settings = settings_service.update_settings(g.current_user.id, patch)
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(settings.to_dict()), 200
