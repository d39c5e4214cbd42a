from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Notification, User
from ..permissions import Role
from ..validation import NotFoundError
from siliconpos.time_utils import utcnow


KIND_LOW_STOCK = "LOW_STOCK"

# Who hears about stock running out
STOCK_ALERT_ROLES = (Role.ADMIN.value, Role.MANAGER.value)


def _stock_alert_recipients() -> list[User]:
    return (
        db.session.query(User)
        .filter(User.is_active.is_(True), User.role.in_(STOCK_ALERT_ROLES))
        .all()
    )


def notify_users(users, *, kind: str, title: str, message: str,
                 entity_type: str | None = None, entity_id: int | None = None) -> int:
    count = 0
    for user in users:
        db.session.add(Notification(
            user_id=user.id,
            kind=kind,
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
        ))
        count += 1
    return count


def notify_low_stock(stock_changes) -> int:
    """
    One notification per recipient per product that just crossed its
    low-stock threshold. Commits.
    """
    recipients = _stock_alert_recipients()
    created = 0
    for change in stock_changes:
        if change.stock_after == 0:
            title = f"Out of stock: {change.name}"
        else:
            title = f"Low stock: {change.name}"
        message = (
            f"{change.name} has {change.stock_after} left "
            f"(threshold {change.low_stock_threshold})."
        )
        created += notify_users(
            recipients,
            kind=KIND_LOW_STOCK,
            title=title,
            message=message,
            entity_type="product",
            entity_id=change.product_id,
        )
    db.session.commit()
    if created:
        current_app.logger.info("Queued %s low-stock notifications", created)
    return created


def list_notifications(user_id: int, *, unread_only: bool = False, limit: int = 50) -> dict:
    query = db.session.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    items = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()

    unread = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )
    return {
        "items": [n.to_dict() for n in items],
        "count": len(items),
        "unread_count": unread,
    }


def mark_read(user_id: int, notification_id: int | None = None) -> int:
    """
    Mark one notification (or, with no id, all of the user's notifications)
    as read. Returns how many changed.
    """
    query = db.session.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    )
    if notification_id is not None:
        exists = (
            db.session.query(Notification.id)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )
        if not exists:
            raise NotFoundError("Notification not found")
        query = query.filter(Notification.id == notification_id)

    count = query.update(
        {Notification.is_read: True, Notification.read_at: utcnow()},
        synchronize_session=False,
    )
    db.session.commit()
    return count
