"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Centralize tenant validation logic for reuse across services.
Every core operation is scoped to the caller's store, and cross-tenant
access must be explicitly denied.

SECURITY INVARIANTS:
1. Non-admin callers only ever see rows whose store_id == tenant.store_id
2. SystemAdmin sees every store
3. A foreign row is reported as "not found" on read paths (its existence is
   not revealed) and as Forbidden on mutating paths
4. Cross-tenant access attempts are logged as security events

USAGE:
    from .tenant_service import ensure_readable, store_scope

    product = ensure_readable(tenant, uow.products.get_by_id(pid), "Product", pid)
    products = uow.products.find(*store_scope(tenant, Product))
"""

from __future__ import annotations

import logging

from ..errors import ForbiddenError, InvalidOperationError, NotFoundError
from ..tenant_context import TenantContext

logger = logging.getLogger(__name__)


def require_store_access(tenant: TenantContext) -> None:
    """Raise ForbiddenError unless the caller has a store or is a SystemAdmin."""
    if not tenant.has_store_access:
        raise ForbiddenError("Store access required")


def require_store_id(tenant: TenantContext) -> int:
    """
    Return the caller's own store id.

    Used where the operation acts *as* a store user (placing an order).
    A SystemAdmin without a store cannot do this.
    """
    if tenant.store_id is None:
        raise InvalidOperationError("User must belong to a store")
    return tenant.store_id


def require_manager(tenant: TenantContext, action: str = "perform this action") -> None:
    require_store_access(tenant)
    if not tenant.is_manager:
        raise ForbiddenError(f"Manager access required to {action}")


def target_store_id(tenant: TenantContext, requested_store_id: int | None = None) -> int:
    """
    Resolve the store a newly created row belongs to.

    Store users always create in their own store; a requested store id that
    differs is a cross-tenant write. A SystemAdmin may name any store and
    falls back to their own store when they have one.
    """
    require_store_access(tenant)
    if tenant.is_system_admin:
        store_id = requested_store_id if requested_store_id is not None else tenant.store_id
        if store_id is None:
            raise InvalidOperationError("store_id is required")
        return store_id
    if requested_store_id is not None and requested_store_id != tenant.store_id:
        _log_cross_tenant_attempt(tenant, "Store", requested_store_id, requested_store_id)
        raise ForbiddenError("Cannot create records in another store")
    return tenant.store_id


def can_access(tenant: TenantContext, store_id: int | None) -> bool:
    if tenant.is_system_admin:
        return True
    return tenant.store_id is not None and store_id == tenant.store_id


def store_scope(tenant: TenantContext, model) -> list:
    """
    SQLAlchemy criteria restricting `model` to the caller's rows.

    Empty for SystemAdmin (sees all stores).
    """
    require_store_access(tenant)
    if tenant.is_system_admin:
        return []
    return [model.store_id == tenant.store_id]


def ensure_readable(tenant: TenantContext, entity, label: str, entity_id):
    """
    Return entity if the caller may read it.

    Missing and foreign rows both raise NotFoundError.
    """
    require_store_access(tenant)
    if entity is None:
        raise NotFoundError(f"{label} not found", details={"id": entity_id})
    if not can_access(tenant, entity.store_id):
        _log_cross_tenant_attempt(tenant, label, entity_id, entity.store_id)
        raise NotFoundError(f"{label} not found", details={"id": entity_id})
    return entity


def ensure_mutable(tenant: TenantContext, entity, label: str, entity_id):
    """
    Return entity if the caller may modify it.

    Missing rows raise NotFoundError; foreign rows raise ForbiddenError.
    """
    require_store_access(tenant)
    if entity is None:
        raise NotFoundError(f"{label} not found", details={"id": entity_id})
    if not can_access(tenant, entity.store_id):
        _log_cross_tenant_attempt(tenant, label, entity_id, entity.store_id)
        raise ForbiddenError(f"Access to {label.lower()} {entity_id} is not allowed")
    return entity


def _log_cross_tenant_attempt(tenant: TenantContext, label: str, entity_id, owner_store_id) -> None:
    logger.warning(
        "Cross-tenant access denied: user=%s store=%s target=%s:%s owner_store=%s",
        tenant.user_id,
        tenant.store_id,
        label,
        entity_id,
        owner_store_id,
    )
