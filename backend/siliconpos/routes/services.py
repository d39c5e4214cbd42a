# Overview: Flask API routes for installation/training services in the catalog.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_permission
from ..models import Service
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_service,
    validate_payload,
)

SERVICE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price_cents", "duration", "is_active"},
    required_on_create={"name", "price_cents"},
)

services_bp = Blueprint("services", __name__, url_prefix="/api/services")


@services_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_services():
    try:
        services = catalog_service.list_services(
            active_only=request.args.get("active_only", "").lower() == "true",
        )
        return jsonify({"items": [s.to_dict() for s in services], "count": len(services)}), 200
    except Exception:
        current_app.logger.exception("Failed to list services")
        return jsonify({"error": "Internal server error"}), 500


@services_bp.get("/<int:service_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_service(service_id: int):
    try:
        return jsonify(catalog_service.get_service(service_id).to_dict()), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@services_bp.post("")
@require_auth
@require_permission("MANAGE_SERVICES")
def create_service_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=False)
        enforce_rules_service(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = catalog_service.create_service(patch=patch)
    except Exception:
        current_app.logger.exception("Failed to create service")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created.to_dict()), 201


@services_bp.patch("/<int:service_id>")
@require_auth
@require_permission("MANAGE_SERVICES")
def update_service_route(service_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=True)
        enforce_rules_service(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = catalog_service.update_service(service_id=service_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update service")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated.to_dict()), 200


@services_bp.delete("/<int:service_id>")
@require_auth
@require_permission("MANAGE_SERVICES")
def delete_service_route(service_id: int):
    try:
        catalog_service.delete_service(service_id=service_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete service")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True}), 200
