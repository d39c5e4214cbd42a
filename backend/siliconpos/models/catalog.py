from __future__ import annotations

import enum

from ..extensions import db
from siliconpos.time_utils import to_utc_z, utcnow


class ProductCategory(str, enum.Enum):
    """Closed set of catalog categories. SERVICES doubles as the bucket for service lines."""
    NETWORKING = "networking"
    CCTV = "cctv"
    INTERCOM = "intercom"
    SERVICES = "services"

    @classmethod
    def values(cls) -> list[str]:
        return [c.value for c in cls]


class Product(db.Model):
    """
    Stocked catalog item.

    Prices are authoritative in cents. stock_quantity is only ever lowered by
    an atomic conditional UPDATE in sales_service, so it cannot go negative.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("low_stock_threshold >= 0", name="ck_products_threshold_nonnegative"),
        db.Index("ix_products_active_stock", "is_active", "stock_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(64), nullable=True, unique=True)
    category = db.Column(db.String(32), nullable=False, index=True)

    price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "category": self.category,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "stock_quantity": self.stock_quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Service(db.Model):
    """Installation, maintenance and training offerings. No stock."""
    __tablename__ = "services"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price_cents = db.Column(db.Integer, nullable=False)
    # Free text, e.g. "4-6 hours" or "Monthly"
    duration = db.Column(db.String(64), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Service id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": ProductCategory.SERVICES.value,
            "price_cents": self.price_cents,
            "duration": self.duration,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
