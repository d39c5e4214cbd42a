from __future__ import annotations

import enum

from ..extensions import db
from siliconpos.time_utils import to_utc_z, utcnow


class SaleStatus(str, enum.Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    CANCELLED = "cancelled"

    @classmethod
    def values(cls) -> list[str]:
        return [s.value for s in cls]


class Sale(db.Model):
    """
    A completed checkout.

    Totals are fixed at creation (total = subtotal - discount, tax is 0).
    Only status and notes change afterwards.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created_at", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number, e.g. "SL-20261019-000A"
    sale_number = db.Column(db.String(32), nullable=False, unique=True)

    staff_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(64), nullable=True)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SaleStatus.COMPLETED.value, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    staff_user = db.relationship("User", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "staff_user_id": self.staff_user_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    One line of a sale.

    name is a snapshot taken at checkout; reports group on it so renaming or
    deleting the product later does not rewrite history. product_id and
    service_id are plain columns (no FK) for the same reason.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)

    product_id = db.Column(db.Integer, nullable=True, index=True)
    service_id = db.Column(db.Integer, nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "service_id": self.service_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
        }
