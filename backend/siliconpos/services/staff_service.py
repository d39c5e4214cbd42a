# Overview: Staff account management for admins.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import User
from ..validation import NotFoundError, ValidationError
from .auth_service import create_user, ensure_identity_free, hash_password
from .session_service import revoke_all_user_sessions

STAFF_MUTABLE_FIELDS = {"name", "username", "email", "role", "is_active"}


def list_staff(*, role: str | None = None, active_only: bool = False) -> list[User]:
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role)
    if active_only:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def get_staff(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("Staff member not found")
    return user


def create_staff(*, patch: dict, password: str) -> User:
    return create_user(
        name=patch["name"],
        username=patch["username"],
        password=password,
        email=patch.get("email"),
        role=patch.get("role") or "sales",
        is_active=patch.get("is_active", True),
    )


def update_staff(*, user_id: int, patch: dict, acting_user_id: int, password: str | None = None) -> User:
    """
    Update profile, role, active flag and/or password.

    An admin cannot deactivate their own account. Deactivating an account
    or changing its password revokes its sessions.
    """
    user = get_staff(user_id)

    if user.id == acting_user_id and patch.get("is_active") is False:
        raise ValidationError("You cannot deactivate your own account")

    ensure_identity_free(patch.get("username"), patch.get("email"), exclude_id=user.id)

    for k, v in patch.items():
        if k in STAFF_MUTABLE_FIELDS:
            setattr(user, k, v)

    revoke_reason = None
    if password is not None:
        user.password_hash = hash_password(password)
        revoke_reason = "Password changed"
    if patch.get("is_active") is False:
        revoke_reason = "User account deactivated"

    if revoke_reason:
        revoke_all_user_sessions(user.id, revoke_reason, commit=False)

    db.session.commit()
    current_app.logger.info("Updated user %s (%s)", user.username, ", ".join(sorted(patch)) or "password")
    return user


def delete_staff(*, user_id: int, acting_user_id: int) -> None:
    """Hard delete. Their past sales keep the snapshot but lose the staff link."""
    user = get_staff(user_id)
    if user.id == acting_user_id:
        raise ValidationError("You cannot delete your own account")
    username = user.username
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("Deleted user %s", username)
