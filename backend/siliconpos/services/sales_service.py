"""
Sales service: checkout and sale lookups.

WHY one transaction: a sale, its items and the stock it consumes either all
land or none do. Stock is decremented with a single conditional UPDATE per
product, so two registers selling the last unit cannot both succeed.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import Product, Sale, SaleItem, Service, SaleStatus
from ..validation import CartRequest, NotFoundError
from ..time_utils import normalize_local, to_utc_naive
from .. import cache
from .concurrency import begin_write, run_with_retry
from .document_service import next_sale_number
from . import notification_service

SALE_MUTABLE_FIELDS = {"status", "notes"}


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None, status_code: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status_code = status_code


@dataclass
class StockChange:
    product_id: int
    name: str
    quantity: int
    stock_after: int
    low_stock_threshold: int
    is_active: bool

    @property
    def stock_before(self) -> int:
        return self.stock_after + self.quantity

    @property
    def crossed_low_stock(self) -> bool:
        """True only on the sale that pushed the product to or below its threshold."""
        return (
            self.is_active
            and self.stock_after <= self.low_stock_threshold < self.stock_before
        )


def _fresh_product(product_id: int) -> Product | None:
    return (
        db.session.query(Product)
        .filter(Product.id == product_id)
        .populate_existing()
        .one_or_none()
    )


def _decrement_stock(product_totals: dict[int, int]) -> dict[int, StockChange]:
    """
    UPDATE products SET stock_quantity = stock_quantity - :q
    WHERE id = :id AND stock_quantity >= :q

    Every product is attempted so the error lists all shortfalls at once;
    the caller's rollback undoes the ones that succeeded.
    """
    changes: dict[int, StockChange] = {}
    insufficient = []

    for product_id, qty in product_totals.items():
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= qty)
            .values(stock_quantity=Product.stock_quantity - qty)
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(stmt)
        product = _fresh_product(product_id)

        if product is None:
            raise SaleError(
                "Product not found",
                details={"product_id": product_id},
                status_code=404,
            )

        if not result.rowcount:
            insufficient.append({
                "product_id": product_id,
                "name": product.name,
                "requested_quantity": qty,
                "available": product.stock_quantity,
            })
            continue

        changes[product_id] = StockChange(
            product_id=product_id,
            name=product.name,
            quantity=qty,
            stock_after=product.stock_quantity,
            low_stock_threshold=product.low_stock_threshold,
            is_active=product.is_active,
        )

    if insufficient:
        raise SaleError(
            "Insufficient stock",
            details={"items": insufficient},
            status_code=409,
        )
    return changes


def _resolve_services(cart: CartRequest) -> dict[int, Service]:
    service_ids = {item.service_id for item in cart.items if item.service_id is not None}
    if not service_ids:
        return {}
    services = db.session.query(Service).filter(Service.id.in_(service_ids)).all()
    found = {s.id: s for s in services}
    missing = sorted(service_ids - found.keys())
    if missing:
        raise SaleError(
            "Service not found",
            details={"service_ids": missing},
            status_code=404,
        )
    return found


def create_sale(cart: CartRequest, *, staff_user_id: int | None, now: datetime | None = None) -> Sale:
    """
    Record a completed checkout.

    Raises:
        SaleError: 404 for unknown products/services, 409 for insufficient
            stock. Nothing is written in either case.
    """
    def _op() -> tuple[Sale, list[StockChange]]:
        begin_write()
        checkout_at = normalize_local(now)

        services = _resolve_services(cart)

        product_totals: dict[int, int] = {}
        for item in cart.items:
            if item.product_id is not None:
                product_totals[item.product_id] = product_totals.get(item.product_id, 0) + item.quantity
        stock_changes = _decrement_stock(product_totals)

        sale = Sale(
            sale_number=next_sale_number(checkout_at),
            staff_user_id=staff_user_id,
            customer_name=cart.customer_name,
            customer_phone=cart.customer_phone,
            subtotal_cents=cart.subtotal_cents,
            tax_cents=0,
            discount_cents=cart.discount_cents,
            total_cents=cart.total_cents,
            status=SaleStatus.COMPLETED.value,
            notes=cart.notes,
            created_at=to_utc_naive(checkout_at),
        )
        db.session.add(sale)
        db.session.flush()

        for item in cart.items:
            if item.product_id is not None:
                fallback_name = stock_changes[item.product_id].name
            else:
                fallback_name = services[item.service_id].name
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=item.product_id,
                service_id=item.service_id,
                name=item.name or fallback_name,
                quantity=item.quantity,
                unit_price_cents=item.unit_price_cents,
                total_cents=item.total_cents,
            ))

        db.session.commit()
        return sale, [c for c in stock_changes.values() if c.crossed_low_stock]

    try:
        sale, crossed = run_with_retry(_op)
    except SaleError as exc:
        current_app.logger.warning("Sale rejected: %s %s", exc, exc.details)
        raise

    current_app.logger.info(
        "Created sale %s (%s items, total_cents=%s)",
        sale.sale_number, len(cart.items), sale.total_cents,
    )
    cache.get_cache().invalidate_for_write(cache.SALES)

    if crossed:
        # Sale is already committed; alert failures are logged, not raised
        try:
            notification_service.notify_low_stock(crossed)
        except Exception:
            db.session.rollback()
            current_app.logger.exception(
                "Failed to queue low-stock notifications for sale %s", sale.sale_number
            )

    return sale


def list_sales(*, page: int | None = None, per_page: int | None = None) -> dict:
    """All sales, newest first, optionally paginated like the product list."""
    base_query = db.session.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc())

    if page is None:
        sales = base_query.all()
        return {"items": [s.to_dict() for s in sales], "count": len(sales)}

    per_page = min(per_page or 20, 100)
    page = max(page, 1)
    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    sales = base_query.offset((page - 1) * per_page).limit(per_page).all()
    return {
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def update_sale(*, sale_id: int, patch: dict) -> Sale:
    """
    Change status and/or notes. Totals and items are immutable.

    Cancelling does not restock; returns are handled as stock edits.
    """
    sale = get_sale(sale_id)
    for k, v in patch.items():
        if k in SALE_MUTABLE_FIELDS:
            setattr(sale, k, v)
    db.session.commit()
    cache.get_cache().invalidate(cache.SALES, cache.DASHBOARD, cache.REPORTS)
    return sale
