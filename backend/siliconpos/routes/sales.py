# Overview: Flask API routes for checkout and sale history.

"""
Sales routes.

POST /api/sales is the checkout: the cart is validated up front, then the
sale, its items and the stock decrements are written in one transaction.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..models import Sale
from ..services import sales_service
from ..services.sales_service import SaleError
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_sale_update,
    validate_cart_payload,
    validate_payload,
)

SALE_UPDATE_POLICY = ModelValidationPolicy(writable_fields={"status", "notes"})

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales():
    try:
        result = sales_service.list_sales(
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result), 200
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(sale.to_dict(include_items=True)), 200


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Check out a cart.

    Body:
    {
        "items": [{"product_id": 1, "name": "...", "quantity": 2, "unit_price_cents": 1599},
                  {"service_id": 3, "quantity": 1, "unit_price_cents": 29999}],
        "customer_name": "optional",
        "customer_phone": "optional",
        "discount_cents": 0,
        "notes": "optional"
    }

    400 invalid cart, 404 unknown product/service, 409 insufficient stock.
    """
    try:
        cart = validate_cart_payload(request.get_json(silent=True))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        sale = sales_service.create_sale(cart, staff_user_id=g.current_user.id)
    except SaleError as e:
        body = {"error": str(e)}
        if e.details:
            body["details"] = e.details
        return jsonify(body), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale.to_dict(include_items=True)), 201


@sales_bp.patch("/<int:sale_id>")
@require_auth
@require_permission("UPDATE_SALE")
def update_sale_route(sale_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Sale, payload=payload, policy=SALE_UPDATE_POLICY, partial=True)
        enforce_rules_sale_update(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        sale = sales_service.update_sale(sale_id=sale_id, patch=patch)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(sale.to_dict(include_items=True)), 200
