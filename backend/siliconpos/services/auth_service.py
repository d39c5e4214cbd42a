# Overview: Password hashing, login and self-registration.

"""
Authentication Service

Every sale is attributed to a staff account. Uses bcrypt for password
hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, with upper, lower, digit and special character
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..permissions import Role
from ..validation import ConflictError, ValidationError
from siliconpos.time_utils import utcnow


BCRYPT_ROUNDS = 12


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


PASSWORD_MIN_LENGTH = 8

# (pattern, what the password needs at least one of)
PASSWORD_RULES = (
    (r"[A-Z]", "uppercase letter"),
    (r"[a-z]", "lowercase letter"),
    (r"\d", "digit"),
    (r"[!@#$%^&*(),.'\":{}|<>]", "special character"),
)


def validate_password_strength(password: str) -> None:
    """At least PASSWORD_MIN_LENGTH characters and one match for every PASSWORD_RULES entry."""
    if not isinstance(password, str):
        raise PasswordValidationError("Password must be a string")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise PasswordValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    for pattern, missing in PASSWORD_RULES:
        if not re.search(pattern, password):
            raise PasswordValidationError(f"Password must contain at least one {missing}")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash. Stored as a str."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe comparison via bcrypt.checkpw. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def ensure_identity_free(username: str | None, email: str | None, exclude_id: int | None = None) -> None:
    """Raise ConflictError if username or email belongs to another user."""
    if username:
        query = db.session.query(User.id).filter(User.username == username)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("Username already exists")
    if email:
        query = db.session.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("Email already exists")


def create_user(
    *,
    name: str,
    username: str,
    password: str,
    email: str | None = None,
    role: str = Role.SALES.value,
    is_active: bool = True,
) -> User:
    """
    Create a staff account with a bcrypt password hash.

    Raises:
        ValidationError: unknown role
        ConflictError: username or email taken
        PasswordValidationError: weak password
    """
    try:
        role = Role.parse(role).value
    except ValueError:
        raise ValidationError(f"role must be one of: {', '.join(Role.values())}")

    ensure_identity_free(username, email)

    user = User(
        name=name,
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Created user %s (role=%s)", user.username, user.role)
    return user


def register_user(*, name: str, username: str, password: str, email: str | None = None) -> User:
    """
    Self-registration. The very first account becomes admin so a fresh
    install can be bootstrapped; everyone after that starts as sales.
    """
    first_user = db.session.query(User.id).first() is None
    role = Role.ADMIN.value if first_user else Role.SALES.value
    return create_user(name=name, username=username, password=password, email=email, role=role)


def authenticate(username: str, password: str) -> User | None:
    """
    Returns the User if the credentials are valid (username or email),
    None otherwise. Inactive accounts are checked by the caller so the
    response can say so. Updates last_login_at on success.
    """
    if not username or not password:
        return None

    user = (
        db.session.query(User)
        .filter(db.or_(User.username == username, User.email == username))
        .first()
    )
    if user is None or not verify_password(password, user.password_hash):
        return None

    if user.is_active:
        user.last_login_at = utcnow()
        db.session.commit()
    return user
