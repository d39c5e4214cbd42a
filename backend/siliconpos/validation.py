# Overview: Request payload validation for catalog, staff, settings and checkout.

"""
Payload validation.

Catalog, staff and settings writes go through validate_payload(), which
checks incoming JSON against a model's column metadata and a per-route
allowlist. Checkout carts have their own parser (validate_cart_payload)
because a cart is not a row.

Routes map ValidationError -> 400, NotFoundError -> 404, ConflictError -> 409.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text

from siliconpos.models import ProductCategory, SaleStatus, THEMES
from siliconpos.permissions import Role


# $9,999,999.99
MAX_PRICE_CENTS = 999_999_999
MAX_CART_LINES = 200


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level missing entity."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which columns a route lets clients write, and which a create must include."""
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)


def coerce_int(key: str, value: Any) -> int:
    """
    Accept ints and digit strings ("12", " -3 ").

    Floats, bools, "1.0" and "1e3" are rejected rather than truncated; a
    quantity of 1.5 is a client bug, not a quantity of 1.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be an integer")

    text = value.strip()
    digits = text[1:] if text.startswith("-") else text
    if not digits.isdigit():
        raise ValidationError(f"{key} must be an integer")
    return int(text)


def _clean_text(key: str, value: Any, column) -> str | None:
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{key} must be a string")
    text = str(value).strip()

    if text == "":
        if not column.nullable:
            raise ValidationError(f"{key} cannot be blank")
        # Stored as NULL so unique sku/email columns allow many blanks
        return None

    limit = getattr(column.type, "length", None)
    if limit and len(text) > limit:
        raise ValidationError(f"{key} exceeds max length {limit}")
    return text


def _clean_value(key: str, value: Any, column):
    # Boolean before Integer: bool columns must not accept 0/1
    if isinstance(column.type, Boolean):
        if not isinstance(value, bool):
            raise ValidationError(f"{key} must be true or false")
        return value
    if isinstance(column.type, Integer):
        return coerce_int(key, value)
    if isinstance(column.type, (String, Text)):
        return _clean_text(key, value, column)
    return value


def validate_payload(*, model, payload: dict, policy: ModelValidationPolicy, partial: bool) -> dict:
    """
    Returns a cleaned patch containing only allowlisted columns.

    partial=False (POST) additionally requires policy.required_on_create.
    Explicit nulls are allowed only for nullable columns.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create - payload.keys())
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    unknown = [k for k in payload if k not in policy.writable_fields or k not in columns]
    if unknown:
        raise ValidationError(f"Field not allowed: {unknown[0]}")

    patch: dict = {}
    for key, raw in payload.items():
        column = columns[key]
        if raw is None:
            if not column.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _clean_value(key, raw, column)
    return patch


def _check_price(patch: dict, key: str) -> None:
    if key in patch and patch[key] is not None:
        price = patch[key]
        if price < 0:
            raise ValidationError(f"{key} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_price(patch, "price_cents")
    _check_price(patch, "cost_price_cents")

    for key in ("stock_quantity", "low_stock_threshold"):
        if key in patch and patch[key] is not None and patch[key] < 0:
            raise ValidationError(f"{key} must be >= 0")

    if "category" in patch:
        if patch["category"] not in ProductCategory.values():
            raise ValidationError(
                f"category must be one of: {', '.join(ProductCategory.values())}"
            )


def enforce_rules_service(patch: dict) -> None:
    _check_price(patch, "price_cents")


def enforce_rules_staff(patch: dict) -> None:
    if "role" in patch:
        try:
            patch["role"] = Role.parse(patch["role"]).value
        except ValueError:
            raise ValidationError(f"role must be one of: {', '.join(Role.values())}")
    if patch.get("email") and "@" not in patch["email"]:
        raise ValidationError("email must be a valid email address")


def enforce_rules_sale_update(patch: dict) -> None:
    if "status" in patch and patch["status"] not in SaleStatus.values():
        raise ValidationError(f"status must be one of: {', '.join(SaleStatus.values())}")


def enforce_rules_settings(patch: dict) -> None:
    if "theme" in patch and patch["theme"] not in THEMES:
        raise ValidationError(f"theme must be one of: {', '.join(THEMES)}")


# =============================================================================
# CART
# =============================================================================


@dataclass(frozen=True)
class CartItem:
    name: str | None
    quantity: int
    unit_price_cents: int
    product_id: int | None = None
    service_id: int | None = None

    @property
    def total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass(frozen=True)
class CartRequest:
    items: tuple[CartItem, ...]
    discount_cents: int = 0
    customer_name: str | None = None
    customer_phone: str | None = None
    notes: str | None = None

    @property
    def subtotal_cents(self) -> int:
        return sum(item.total_cents for item in self.items)

    @property
    def total_cents(self) -> int:
        return self.subtotal_cents - self.discount_cents


def _optional_text(payload: dict, key: str, max_length: int) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value or None


def _parse_cart_item(index: int, raw: Any) -> CartItem:
    label = f"items[{index}]"
    if not isinstance(raw, dict):
        raise ValidationError(f"{label} must be an object")

    product_id = raw.get("product_id")
    service_id = raw.get("service_id")
    if (product_id is None) == (service_id is None):
        raise ValidationError(f"{label} must reference exactly one of product_id or service_id")
    if product_id is not None:
        product_id = coerce_int(f"{label}.product_id", product_id)
    if service_id is not None:
        service_id = coerce_int(f"{label}.service_id", service_id)

    if "quantity" not in raw:
        raise ValidationError(f"{label}.quantity is required")
    quantity = coerce_int(f"{label}.quantity", raw["quantity"])
    if quantity <= 0:
        raise ValidationError(f"{label}.quantity must be > 0")

    if "unit_price_cents" not in raw:
        raise ValidationError(f"{label}.unit_price_cents is required")
    unit_price = coerce_int(f"{label}.unit_price_cents", raw["unit_price_cents"])
    if unit_price < 0:
        raise ValidationError(f"{label}.unit_price_cents must be >= 0")
    if unit_price > MAX_PRICE_CENTS:
        raise ValidationError(f"{label}.unit_price_cents cannot exceed {MAX_PRICE_CENTS}")

    name = raw.get("name")
    if name is not None:
        if not isinstance(name, str):
            raise ValidationError(f"{label}.name must be a string")
        name = name.strip()[:255] or None

    return CartItem(
        name=name,
        quantity=quantity,
        unit_price_cents=unit_price,
        product_id=product_id,
        service_id=service_id,
    )


def validate_cart_payload(payload: Any) -> CartRequest:
    """
    Validate a checkout request.

    The discount is an absolute amount already computed by the caller, and
    may not exceed the subtotal.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    items = payload.get("items")
    if not items or not isinstance(items, list):
        raise ValidationError("Cart items required")
    if len(items) > MAX_CART_LINES:
        raise ValidationError(f"Cart cannot contain more than {MAX_CART_LINES} lines")

    cart_items = tuple(_parse_cart_item(i, raw) for i, raw in enumerate(items))

    discount = payload.get("discount_cents")
    discount = 0 if discount is None else coerce_int("discount_cents", discount)
    if discount < 0:
        raise ValidationError("discount_cents must be >= 0")

    cart = CartRequest(
        items=cart_items,
        discount_cents=discount,
        customer_name=_optional_text(payload, "customer_name", 255),
        customer_phone=_optional_text(payload, "customer_phone", 64),
        notes=_optional_text(payload, "notes", 2000),
    )
    if cart.discount_cents > cart.subtotal_cents:
        raise ValidationError("discount_cents cannot exceed the cart subtotal")
    return cart
