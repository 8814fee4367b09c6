# Overview: Password hashing, user creation and credential checks; login/logout on top of session tokens.

"""
Authentication Service

WHY: Every order and invoice is attributed to a user, and the user's store
and role become the request's TenantContext. Uses bcrypt for password
hashing and validates password strength.

MULTI-TENANT: Staff and Manager users belong to exactly one store.
SystemAdmin users have no store. Username and email are unique platform-wide.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
- Login is refused for inactive users and users of inactive stores
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app
from sqlalchemy import or_

from ..errors import AuthenticationError, InvalidOperationError, ValidationError
from ..models import User, UserRole
from ..persistence import UnitOfWork
from ..time_utils import utcnow
from .session_service import create_session, revoke_session, store_is_active


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r"[A-Z]", password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r"[a-z]", password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r"\d", password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash never matches.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _required_text(value, field: str) -> str:
    text = (value or "").strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def create_user(
    uow: UnitOfWork,
    *,
    username: str,
    email: str,
    password: str,
    full_name: str,
    role: UserRole | str = UserRole.STAFF,
    store_id: int | None = None,
    commit: bool = True,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: missing fields, weak password, or a store user without a store
        InvalidOperationError: username or email already taken
    """
    username = _required_text(username, "username")
    email = _required_text(email, "email")
    full_name = _required_text(full_name, "full_name")
    role = UserRole.parse(role)

    if role != UserRole.SYSTEM_ADMIN and store_id is None:
        raise ValidationError("Store users must belong to a store")

    if uow.users.exists(or_(User.username == username, User.email == email)):
        raise InvalidOperationError("Username or email already exists")

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        role=role,
        store_id=store_id,
        is_active=True,
    )
    uow.users.add(user)
    if commit:
        uow.commit()
    return user


def authenticate(uow: UnitOfWork, username: str, password: str) -> User | None:
    """
    Authenticate user with username (or email) and password.

    Returns User if credentials valid, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not username or not password:
        return None

    user = uow.users.first(
        or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    )
    if user is None:
        return None

    if not store_is_active(uow, user.store_id):
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    uow.commit()
    return user


def login(uow: UnitOfWork, username: str, password: str) -> tuple[User, str, object]:
    """
    Credentials in, (user, plaintext_token, expires_at) out.

    Raises AuthenticationError on any credential problem without saying which.
    """
    user = authenticate(uow, username, password)
    if user is None:
        raise AuthenticationError("Invalid username or password")

    session, token = create_session(uow, user)
    return user, token, session.expires_at


def logout(uow: UnitOfWork, token: str) -> bool:
    return revoke_session(uow, token)
