# Overview: Bearer session tokens: issue, validate, revoke.

"""
Session Token Management Service

Tokens are cryptographically secure, hashed in the database and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS, default 24)
- Idle timeout (SESSION_IDLE_TIMEOUT_HOURS, default 2)
- Revocable on logout, deactivation or deletion of the user
- Tracks client IP and user agent
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app, has_app_context

from ..extensions import db
from ..models import SessionToken, User
from siliconpos.time_utils import utcnow


DEFAULT_ABSOLUTE_TIMEOUT_HOURS = 24
DEFAULT_IDLE_TIMEOUT_HOURS = 2


@dataclass
class SessionContext:
    """What validate_session hands to require_auth."""
    user: User
    session: SessionToken


def _timeout(key: str, default_hours: int) -> timedelta:
    hours = default_hours
    if has_app_context():
        hours = current_app.config.get(key, default_hours)
    return timedelta(hours=hours)


def absolute_timeout() -> timedelta:
    return _timeout("SESSION_ABSOLUTE_TIMEOUT_HOURS", DEFAULT_ABSOLUTE_TIMEOUT_HOURS)


def idle_timeout() -> timedelta:
    return _timeout("SESSION_IDLE_TIMEOUT_HOURS", DEFAULT_IDLE_TIMEOUT_HOURS)


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 hex digest of a token.

    Tokens are already high-entropy, so a fast hash is enough (unlike passwords).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a new session for a user.

    Returns (session_record, plaintext_token). The client receives the
    plaintext token, the database stores only the hash.

    Raises ValueError if the user does not exist or is inactive.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("Account is inactive")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + absolute_timeout(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str, now) -> None:
    session.is_revoked = True
    session.revoked_at = now
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a live token, or None.

    None when the token is unknown, expired, revoked or idle too long, or the
    user account is inactive. Idle and inactive-user sessions are revoked on
    the spot. Updates last_used_at on success.
    """
    now = utcnow()
    session = (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )
    if session is None:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > idle_timeout():
        _revoke(session, "Idle timeout", now)
        db.session.commit()
        return None

    user = session.user
    if user is None or not user.is_active:
        _revoke(session, "User account deactivated", now)
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()
    return SessionContext(user=user, session=session)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked."""
    session = (
        db.session.query(SessionToken)
        .filter_by(token_hash=hash_token(token), is_revoked=False)
        .first()
    )
    if session is None:
        return False
    _revoke(session, reason, utcnow())
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions", *, commit: bool = True) -> int:
    """Force re-authentication on every device. Returns the count revoked."""
    now = utcnow()
    sessions = (
        db.session.query(SessionToken)
        .filter_by(user_id=user_id, is_revoked=False)
        .all()
    )
    for session in sessions:
        _revoke(session, reason, now)
    if commit:
        db.session.commit()
    return len(sessions)
