from __future__ import annotations

from ..extensions import db
from siliconpos.time_utils import to_utc_z, utcnow


class Notification(db.Model):
    """
    Per-user inbox entry shown by the notification bell.

    kind: LOW_STOCK, SALE, SYSTEM
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "is_read"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    kind = db.Column(db.String(32), nullable=False, default="SYSTEM")
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    # Optional pointer at the thing the notification is about
    entity_type = db.Column(db.String(32), nullable=True)
    entity_id = db.Column(db.Integer, nullable=True)

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    user = db.relationship(
        "User",
        backref=db.backref("notifications", lazy=True, cascade="all, delete-orphan"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "kind": self.kind,
            "title": self.title,
            "message": self.message,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "is_read": self.is_read,
            "read_at": to_utc_z(self.read_at),
            "created_at": to_utc_z(self.created_at),
        }
