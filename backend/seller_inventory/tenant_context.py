# Overview: Per-request tenant identity passed explicitly into every service call.

"""
Tenant Context

WHY: Every read and write in the core is scoped to the caller's store. The
context is an immutable value built once per authenticated request (see
decorators.require_auth) and handed to services as their first argument.
It never lives in a process-wide global, so services stay thread-safe and
can be exercised in tests without a web request.

The context only exposes facts. Enforcement lives in tenant_service.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models.enums import UserRole


@dataclass(frozen=True)
class TenantContext:
    user_id: int | None = None
    store_id: int | None = None
    role: UserRole | None = None

    @classmethod
    def for_user(cls, user) -> "TenantContext":
        return cls(user_id=user.id, store_id=user.store_id, role=user.role)

    @classmethod
    def anonymous(cls) -> "TenantContext":
        return cls()

    @property
    def current_store_id(self) -> int | None:
        return self.store_id

    @property
    def current_user_id(self) -> int | None:
        return self.user_id

    @property
    def current_user_role(self) -> UserRole | None:
        return self.role

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_system_admin(self) -> bool:
        return self.role == UserRole.SYSTEM_ADMIN

    @property
    def is_manager(self) -> bool:
        """Manager-level access: store managers and platform admins."""
        return self.role in (UserRole.MANAGER, UserRole.SYSTEM_ADMIN)

    @property
    def has_store_access(self) -> bool:
        return self.store_id is not None or self.is_system_admin
