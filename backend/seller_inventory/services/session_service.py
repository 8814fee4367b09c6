# Overview: Session token issue, validation and revocation; the source of each request's TenantContext.

"""
Session Token Management Service with Multi-Tenant Support

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

MULTI-TENANT: Sessions capture store_id and role at creation time.
This establishes the tenant context for every authenticated request
without repeated database lookups.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS, default 24h)
- Idle timeout (SESSION_IDLE_TIMEOUT_HOURS, default 2h)
- Revocable on logout or security events
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..models import SessionToken, Store, User
from ..persistence import UnitOfWork
from ..tenant_context import TenantContext
from ..time_utils import utcnow


@dataclass
class SessionContext:
    """
    Everything validate_session knows about a live session.

    tenant is built from the session record, not the user row, so it stays
    fixed for the session lifetime.
    """
    user: User
    session: SessionToken
    tenant: TenantContext


def _timeouts() -> tuple[timedelta, timedelta]:
    cfg = current_app.config
    return (
        timedelta(hours=cfg.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24)),
        timedelta(hours=cfg.get("SESSION_IDLE_TIMEOUT_HOURS", 2)),
    )


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(uow: UnitOfWork, user: User, *, commit: bool = True) -> tuple[SessionToken, str]:
    """
    Create new session token for user with tenant context.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    absolute_timeout, _ = _timeouts()
    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        store_id=user.store_id,
        role=user.role,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + absolute_timeout,
        is_revoked=False,
    )
    uow.session_tokens.add(session)
    if commit:
        uow.commit()
    return session, plaintext_token


def _revoke(session: SessionToken) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()


def validate_session(uow: UnitOfWork, token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if:
    - Token is unknown, expired, or revoked
    - Session has been idle too long (it is revoked as a side effect)
    - User account is deactivated
    - User's store is deactivated

    Updates last_used_at on successful validation (activity tracking).
    """
    if not token:
        return None

    absolute_timeout, idle_timeout = _timeouts()
    now = utcnow()

    session = uow.session_tokens.first(
        SessionToken.token_hash == hash_token(token),
        SessionToken.is_revoked.is_(False),
    )
    if session is None:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > idle_timeout:
        _revoke(session)
        uow.commit()
        return None

    user = uow.users.get_by_id(session.user_id)
    if user is None or not user.is_active:
        _revoke(session)
        uow.commit()
        return None

    if not store_is_active(uow, session.store_id):
        _revoke(session)
        uow.commit()
        return None

    session.last_used_at = now
    uow.commit()

    tenant = TenantContext(user_id=session.user_id, store_id=session.store_id, role=session.role)
    return SessionContext(user=user, session=session, tenant=tenant)


def revoke_session(uow: UnitOfWork, token: str) -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = uow.session_tokens.first(
        SessionToken.token_hash == hash_token(token),
        SessionToken.is_revoked.is_(False),
    )
    if session is None:
        return False

    _revoke(session)
    uow.commit()
    return True


def revoke_all_user_sessions(uow: UnitOfWork, user_id: int) -> int:
    """Revoke all active sessions for a user. Returns count of sessions revoked."""
    sessions = uow.session_tokens.find(
        SessionToken.user_id == user_id,
        SessionToken.is_revoked.is_(False),
    )
    for session in sessions:
        _revoke(session)
    uow.commit()
    return len(sessions)


def store_is_active(uow: UnitOfWork, store_id: int | None) -> bool:
    if store_id is None:
        return True
    store: Store | None = uow.stores.get_by_id(store_id)
    return store is not None and store.is_active
