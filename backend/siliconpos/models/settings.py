from __future__ import annotations

from ..extensions import db
from siliconpos.time_utils import to_utc_z, utcnow


THEMES = ("light", "dark", "system")


class UserSetting(db.Model):
    """Per-user UI and notification preferences (one row per user, created on first read)."""
    __tablename__ = "user_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    theme = db.Column(db.String(16), nullable=False, default="system")
    email_notifications = db.Column(db.Boolean, nullable=False, default=True)
    push_notifications = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    user = db.relationship(
        "User",
        backref=db.backref("settings", lazy=True, uselist=False, cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "theme": self.theme,
            "email_notifications": self.email_notifications,
            "push_notifications": self.push_notifications,
            "updated_at": to_utc_z(self.updated_at),
        }
