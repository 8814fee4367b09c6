from __future__ import annotations

import re
import secrets
from datetime import timedelta

from flask import current_app

from ..errors import InvalidOperationError, NotFoundError, ValidationError
from ..models import INVITABLE_ROLES, Store, StoreInvitation, SubscriptionStatus, User, UserRole
from ..persistence import UnitOfWork
from ..tenant_context import TenantContext
from ..time_utils import utcnow
from ..validation import ModelValidationPolicy, apply_patch, validate_payload
from .auth_service import create_user
from .session_service import create_session
from .tenant_service import require_manager, require_store_id, store_scope, target_store_id

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

STORE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "name", "location", "address", "industry", "description",
        "contact_email", "contact_phone", "currency",
    }),
    required_on_create=frozenset({"name"}),
)


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").strip().lower())
    return slug.strip("-")


def register_store(uow: UnitOfWork, payload: dict) -> tuple[Store, User, str]:
    """
    Create a store on a trial subscription together with its first Manager.

    payload keys: store_name, store_slug (optional, derived from the name),
    location, address, industry, currency, owner_username, owner_email,
    owner_password, owner_full_name.

    Everything lands in one commit; the owner is signed in and the plaintext
    session token is returned as the third element.
    """
    payload = payload or {}
    store_patch = validate_payload(
        model=Store,
        payload={
            "name": payload.get("store_name"),
            "location": payload.get("location"),
            "address": payload.get("address"),
            "industry": payload.get("industry"),
            "currency": payload.get("currency") or current_app.config.get("DEFAULT_CURRENCY", "USD"),
        },
        policy=STORE_POLICY,
        partial=False,
    )

    slug = (payload.get("store_slug") or "").strip().lower() or slugify(store_patch["name"])
    if not _SLUG_RE.match(slug):
        raise ValidationError("Store slug may only contain lowercase letters, digits and single hyphens")
    if uow.stores.exists(Store.slug == slug):
        raise InvalidOperationError(f"Store slug '{slug}' is already taken", details={"slug": slug})

    now = utcnow()
    with uow.atomic():
        store = Store(
            slug=slug,
            is_active=True,
            subscription_status=SubscriptionStatus.TRIAL,
            subscription_expires_at=now + timedelta(days=current_app.config.get("TRIAL_DAYS", 14)),
        )
        apply_patch(store, store_patch)
        uow.stores.add(store)
        uow.flush()

        owner = create_user(
            uow,
            username=payload.get("owner_username"),
            email=payload.get("owner_email"),
            password=payload.get("owner_password"),
            full_name=payload.get("owner_full_name"),
            role=UserRole.MANAGER,
            store_id=store.id,
            commit=False,
        )
        uow.flush()
        _, token = create_session(uow, owner, commit=False)
    return store, owner, token


def get_current_store(tenant: TenantContext, uow: UnitOfWork) -> Store:
    if tenant.store_id is None:
        raise NotFoundError("No store context available")
    store = uow.stores.get_by_id(tenant.store_id)
    if store is None:
        raise NotFoundError("Store not found", details={"id": tenant.store_id})
    return store


def update_store(tenant: TenantContext, uow: UnitOfWork, payload: dict) -> Store:
    require_manager(tenant, "update store settings")
    store = get_current_store(tenant, uow)
    patch = validate_payload(model=Store, payload=payload, policy=STORE_POLICY, partial=True)

    apply_patch(store, patch)
    store.updated_at = utcnow()
    uow.stores.update(store)
    uow.commit()
    return store


# =============================================================================
# INVITATIONS
# =============================================================================

def invite_user(
    tenant: TenantContext,
    uow: UnitOfWork,
    email: str,
    role=UserRole.STAFF,
    *,
    store_id: int | None = None,
) -> StoreInvitation:
    """
    Invite someone to join the store as Staff or Manager.

    The invitation carries a URL-safe single-use token that expires after
    INVITATION_TTL_DAYS (7 by default).
    """
    require_manager(tenant, "invite users")
    store_id = target_store_id(tenant, store_id)
    email = (email or "").strip() if isinstance(email, str) else ""
    if not email or "@" not in email:
        raise ValidationError("A valid email is required")
    role = UserRole.parse(role)
    if role not in INVITABLE_ROLES:
        raise ValidationError("Invitations may only grant the Staff or Manager role", details={"role": role.value})

    if uow.users.exists(User.email == email):
        raise InvalidOperationError("A user with this email already exists", details={"email": email})

    now = utcnow()
    if uow.invitations.exists(
        StoreInvitation.store_id == store_id,
        StoreInvitation.email == email,
        StoreInvitation.is_used.is_(False),
        StoreInvitation.expires_at > now,
    ):
        raise InvalidOperationError("A pending invitation already exists for this email", details={"email": email})

    invitation = StoreInvitation(
        store_id=store_id,
        email=email,
        role=role,
        token=secrets.token_urlsafe(32),
        expires_at=now + timedelta(days=current_app.config.get("INVITATION_TTL_DAYS", 7)),
        is_used=False,
        invited_by_user_id=tenant.user_id,
    )
    uow.invitations.add(invitation)
    uow.commit()
    return invitation


def list_invitations(tenant: TenantContext, uow: UnitOfWork, *, include_used: bool = False) -> list[StoreInvitation]:
    require_manager(tenant, "view invitations")
    criteria = store_scope(tenant, StoreInvitation)
    if not include_used:
        criteria.extend([StoreInvitation.is_used.is_(False), StoreInvitation.expires_at > utcnow()])
    return uow.invitations.find(*criteria, order_by=(StoreInvitation.created_at.desc(), StoreInvitation.id.desc()))


def accept_invitation(
    uow: UnitOfWork,
    token: str,
    *,
    username: str,
    password: str,
    full_name: str,
    email: str | None = None,
) -> tuple[User, str]:
    """
    Consume an invitation and create the invited user.

    The token is single-use and time-boxed. When an email is supplied it
    must match the invited email exactly (case-sensitive). Returns the new
    user and a plaintext session token.
    """
    if not token:
        raise ValidationError("Invitation token is required")

    invitation = uow.invitations.first(StoreInvitation.token == token)
    if invitation is None:
        raise InvalidOperationError("Invalid invitation token")
    if invitation.is_used:
        raise InvalidOperationError("Invitation has already been used")
    if invitation.expires_at < utcnow():
        raise InvalidOperationError("Invitation has expired")
    if email is not None and email != invitation.email:
        raise InvalidOperationError("Email does not match the invitation")

    store = uow.stores.get_by_id(invitation.store_id)
    if store is None or not store.is_active:
        raise InvalidOperationError("Store is not active")

    with uow.atomic():
        user = create_user(
            uow,
            username=username,
            email=invitation.email,
            password=password,
            full_name=full_name,
            role=invitation.role,
            store_id=invitation.store_id,
            commit=False,
        )
        invitation.is_used = True
        uow.flush()
        _, session_token = create_session(uow, user, commit=False)
    return user, session_token
