# Overview: Store-scoped user management: listing, creating, editing, deactivating and password changes.

"""
User Management Service

WHY: Managers run their own staff list. They create accounts directly
(invitations are the self-service path), correct names and emails,
promote or demote between Staff and Manager, lock accounts and reset
forgotten passwords.

MULTI-TENANT: every operation is scoped to the caller's store. A foreign
user reads as "not found" and cannot be modified. SystemAdmin accounts are
platform-level: only a SystemAdmin may touch them, and they are never
created here (see `flask system create-admin`).

SECURITY NOTES:
- Sessions capture the role at login, so a role change, a deactivation or
  a password reset revokes every session of the target user
- A user cannot deactivate, demote or delete their own account
- change_password is the only self-service operation and requires the
  current password
"""

from __future__ import annotations

import logging
import re

from ..errors import ForbiddenError, InvalidOperationError, NotFoundError, ValidationError
from ..models import INVITABLE_ROLES, Order, SessionToken, StoreInvitation, User, UserRole
from ..persistence import UnitOfWork
from ..tenant_context import TenantContext
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from . import auth_service
from .session_service import revoke_all_user_sessions
from .tenant_service import (
    ensure_mutable,
    ensure_readable,
    require_manager,
    store_scope,
    target_store_id,
)

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,50}$")

USER_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"email", "full_name", "role", "is_active"}),
)


def _ensure_manageable(tenant: TenantContext, user: User) -> User:
    if user.role == UserRole.SYSTEM_ADMIN and not tenant.is_system_admin:
        raise ForbiddenError("SystemAdmin accounts can only be managed by a SystemAdmin")
    return user


def _get_mutable_user(tenant: TenantContext, uow: UnitOfWork, user_id: int) -> User:
    user = ensure_mutable(tenant, uow.users.get_by_id(user_id), "User", user_id)
    return _ensure_manageable(tenant, user)


def _validate_email(email) -> str:
    email = email.strip() if isinstance(email, str) else ""
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    return email


def _store_role(role) -> UserRole:
    role = UserRole.parse(role)
    if role not in INVITABLE_ROLES:
        raise ValidationError("Store users may only hold the Staff or Manager role", details={"role": role.value})
    return role


# =============================================================================
# QUERIES
# =============================================================================

def list_users(tenant: TenantContext, uow: UnitOfWork, *, include_inactive: bool = True) -> list[User]:
    require_manager(tenant, "view users")
    criteria = store_scope(tenant, User)
    if not include_inactive:
        criteria.append(User.is_active.is_(True))
    return uow.users.find(*criteria, order_by=(User.username,))


def get_user(tenant: TenantContext, uow: UnitOfWork, user_id: int) -> User:
    require_manager(tenant, "view users")
    return ensure_readable(tenant, uow.users.get_by_id(user_id), "User", user_id)


# =============================================================================
# COMMANDS
# =============================================================================

def create_user(
    tenant: TenantContext,
    uow: UnitOfWork,
    payload: dict,
    *,
    store_id: int | None = None,
) -> User:
    """
    Create a Staff or Manager account in the caller's store.

    Body keys: username, email, password, full_name, role (default Staff).
    """
    require_manager(tenant, "create users")
    store_id = target_store_id(tenant, store_id)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    username = payload.get("username")
    if not isinstance(username, str) or not USERNAME_PATTERN.match(username.strip()):
        raise ValidationError("Username must be 3-50 letters, digits or underscores")

    user = auth_service.create_user(
        uow,
        username=username.strip(),
        email=_validate_email(payload.get("email")),
        password=payload.get("password"),
        full_name=payload.get("full_name"),
        role=_store_role(payload.get("role", UserRole.STAFF)),
        store_id=store_id,
    )
    logger.info("User %s created in store %s by user %s", user.username, store_id, tenant.user_id)
    return user


def update_user(tenant: TenantContext, uow: UnitOfWork, user_id: int, payload: dict) -> User:
    """Patch email, full_name, role and is_active. Username and store are fixed."""
    require_manager(tenant, "update users")
    user = _get_mutable_user(tenant, uow, user_id)
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)

    if "email" in patch:
        patch["email"] = _validate_email(patch["email"])
        if uow.users.exists(User.email == patch["email"], User.id != user.id):
            raise InvalidOperationError("Email already exists", details={"email": patch["email"]})
    if "role" in patch:
        if user.role != UserRole.SYSTEM_ADMIN:
            patch["role"] = _store_role(patch["role"])
        elif patch["role"] != user.role:
            raise InvalidOperationError("The SystemAdmin role cannot be changed here")

    role_changed = "role" in patch and patch["role"] != user.role
    deactivating = patch.get("is_active") is False and user.is_active
    if user.id == tenant.user_id and (role_changed or deactivating):
        raise InvalidOperationError("Cannot change the role or active state of your own account")

    apply_patch(user, patch)
    uow.users.update(user)
    if role_changed or deactivating:
        revoked = revoke_all_user_sessions(uow, user.id)
        logger.info("User %s updated by user %s; %d sessions revoked", user.id, tenant.user_id, revoked)
    else:
        uow.commit()
    return user


def toggle_active(tenant: TenantContext, uow: UnitOfWork, user_id: int) -> User:
    """Flip is_active. Deactivation revokes every session of the user."""
    require_manager(tenant, "activate or deactivate users")
    user = _get_mutable_user(tenant, uow, user_id)
    if user.id == tenant.user_id:
        raise InvalidOperationError("Cannot deactivate your own account")

    user.is_active = not user.is_active
    uow.users.update(user)
    if user.is_active:
        uow.commit()
        logger.info("User %s reactivated by user %s", user.id, tenant.user_id)
    else:
        revoked = revoke_all_user_sessions(uow, user.id)
        logger.info("User %s deactivated by user %s; %d sessions revoked", user.id, tenant.user_id, revoked)
    return user


def delete_user(tenant: TenantContext, uow: UnitOfWork, user_id: int) -> None:
    """
    Hard delete. Refused for users who placed orders or sent invitations,
    since those rows keep pointing at them; deactivate such users instead.
    """
    require_manager(tenant, "delete users")
    user = _get_mutable_user(tenant, uow, user_id)
    if user.id == tenant.user_id:
        raise InvalidOperationError("Cannot delete your own account")
    if uow.orders.exists(Order.user_id == user.id) or uow.invitations.exists(
        StoreInvitation.invited_by_user_id == user.id
    ):
        raise InvalidOperationError(
            "Cannot delete a user with order or invitation history; deactivate it instead",
            details={"user_id": user.id},
        )

    for session in uow.session_tokens.find(SessionToken.user_id == user.id):
        uow.session_tokens.delete(session)
    uow.flush()
    uow.users.delete(user)
    uow.commit()
    logger.info("User %s deleted by user %s", user_id, tenant.user_id)


def reset_password(tenant: TenantContext, uow: UnitOfWork, user_id: int, new_password: str) -> int:
    """
    Set a new password for another user and log them out everywhere.

    Returns the number of sessions revoked.
    """
    require_manager(tenant, "reset passwords")
    user = _get_mutable_user(tenant, uow, user_id)
    if not new_password:
        raise ValidationError("new_password is required")

    user.password_hash = auth_service.hash_password(new_password)
    uow.users.update(user)
    revoked = revoke_all_user_sessions(uow, user.id)
    logger.info("Password reset for user %s by user %s", user.id, tenant.user_id)
    return revoked


def change_password(tenant: TenantContext, uow: UnitOfWork, current_password: str, new_password: str) -> None:
    """Self-service password change for the caller's own account."""
    if tenant.user_id is None:
        raise ForbiddenError("Authentication required")
    user = uow.users.get_by_id(tenant.user_id)
    if user is None:
        raise NotFoundError("User not found", details={"id": tenant.user_id})
    if not auth_service.verify_password(current_password, user.password_hash):
        raise InvalidOperationError("Current password is incorrect")

    user.password_hash = auth_service.hash_password(new_password)
    uow.users.update(user)
    uow.commit()
