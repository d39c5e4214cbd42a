# Overview: Flask API routes for product operations; parses input and returns JSON responses.

"""
Product catalog routes.

SECURITY: All routes require authentication.
- Read operations require VIEW_CATALOG permission
- Write operations require MANAGE_PRODUCTS permission
"""
from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_permission
from ..models import Product
from ..services import products_service
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "sku",
        "category",
        "price_cents",
        "cost_price_cents",
        "stock_quantity",
        "low_stock_threshold",
        "is_active",
    },
    required_on_create={"name", "category", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_permission("VIEW_CATALOG")
def list_products():
    """
    List products, newest first.

    Query params:
    - category: str (optional)
    - search: str (optional) - substring of name or sku
    - active_only: "true" to hide deactivated products
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    try:
        result = products_service.list_products(
            category=request.args.get("category"),
            search=request.args.get("search"),
            active_only=request.args.get("active_only", "").lower() == "true",
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_CATALOG")
def list_low_stock():
    """Active products at or below their threshold, lowest stock first."""
    try:
        products = products_service.list_low_stock_products()
        return jsonify({"items": [p.to_dict() for p in products], "count": len(products)}), 200
    except Exception:
        current_app.logger.exception("Failed to list low-stock products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_CATALOG")
def get_product(product_id: int):
    try:
        return jsonify(products_service.get_product(product_id).to_dict()), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        created = products_service.create_product(patch=patch)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(created.to_dict()), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(updated.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    """Hard delete. Past sale lines keep their name snapshot."""
    try:
        products_service.delete_product(product_id=product_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"ok": True}), 200
