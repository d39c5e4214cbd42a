# backend/siliconpos/services/products_service.py
"""
Products service: catalog CRUD and low-stock lookups.

Stock is only lowered by sales_service (atomic conditional update); here it
can be set directly by managers when receiving or correcting stock.
"""
from __future__ import annotations
from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, NotFoundError
from .. import cache

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "sku",
    "category",
    "price_cents",
    "cost_price_cents",
    "stock_quantity",
    "low_stock_threshold",
    "is_active",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_sku_free(sku: str | None, exclude_id: int | None = None) -> None:
    if not sku:
        return
    query = db.session.query(Product.id).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError("SKU already exists.")


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    active_only: bool = False,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing, newest first, with optional filters and pagination.

    Args:
        category: Only this category
        search: Case-insensitive substring of name or sku
        active_only: Hide deactivated products
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = db.session.query(Product)
    if category:
        base_query = base_query.filter(Product.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        base_query = base_query.filter(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
    if active_only:
        base_query = base_query.filter(Product.is_active.is_(True))
    base_query = base_query.order_by(Product.created_at.desc(), Product.id.desc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def low_stock_query():
    """Active products at or below their threshold (zero stock included)."""
    return db.session.query(Product).filter(
        Product.is_active.is_(True),
        Product.stock_quantity <= Product.low_stock_threshold,
    )


def list_low_stock_products() -> list[Product]:
    return low_stock_query().order_by(Product.stock_quantity.asc(), Product.name.asc()).all()


def count_low_stock_products() -> int:
    return low_stock_query().count()


def create_product(*, patch: dict) -> Product:
    """
    Create product from a validated patch dict.

    Raises:
        ConflictError: If SKU already exists
    """
    _ensure_sku_free(patch.get("sku"))

    p = Product()
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()

    cache.get_cache().invalidate_for_write(cache.PRODUCTS)
    current_app.logger.info("Created product id=%s sku=%s", p.id, p.sku)
    return p


def update_product(*, product_id: int, patch: dict) -> Product:
    """
    Update a product.

    Raises:
        NotFoundError: If the product does not exist
        ConflictError: If new SKU already exists
    """
    p = get_product(product_id)

    if "sku" in patch and patch["sku"] != p.sku:
        _ensure_sku_free(patch["sku"], exclude_id=p.id)

    apply_product_patch(p, patch)
    db.session.commit()

    cache.get_cache().invalidate_for_write(cache.PRODUCTS)
    return p


def delete_product(*, product_id: int) -> None:
    """
    Hard-delete a product.

    Past sale items keep their name snapshot and product_id; reports treat
    the missing product as uncategorized.
    """
    p = get_product(product_id)
    db.session.delete(p)
    db.session.commit()

    cache.get_cache().invalidate_for_write(cache.PRODUCTS)
    current_app.logger.info("Deleted product id=%s", product_id)
