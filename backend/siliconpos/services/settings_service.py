# Overview: Per-user preferences, created with defaults on first read.

from __future__ import annotations

from ..extensions import db
from ..models import UserSetting

SETTINGS_MUTABLE_FIELDS = {"theme", "email_notifications", "push_notifications"}


def get_or_create_settings(user_id: int) -> UserSetting:
    settings = db.session.query(UserSetting).filter_by(user_id=user_id).first()
    if settings is None:
        settings = UserSetting(user_id=user_id)
        db.session.add(settings)
        db.session.commit()
    return settings


def update_settings(user_id: int, patch: dict) -> UserSetting:
    settings = get_or_create_settings(user_id)
    for k, v in patch.items():
        if k in SETTINGS_MUTABLE_FIELDS:
            setattr(settings, k, v)
    db.session.commit()
    return settings
