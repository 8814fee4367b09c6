from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .enums import SubscriptionStatus, UserRole, enum_column_type


class Store(db.Model):
    """
    Multi-tenant root: every tenant is a Store.

    WHY: Shared-database multi-tenancy. Categories, products, customers,
    orders and invoices all carry store_id and never cross store boundaries.

    Stores are never hard-deleted; deactivate with is_active=False.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(100), nullable=False, unique=True, index=True)

    location = db.Column(db.String(200), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    industry = db.Column(db.String(100), nullable=True)
    description = db.Column(db.String(1000), nullable=True)
    contact_email = db.Column(db.String(100), nullable=True)
    contact_phone = db.Column(db.String(50), nullable=True)
    currency = db.Column(db.String(10), nullable=False, default="USD")

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    subscription_status = db.Column(
        enum_column_type(SubscriptionStatus), nullable=False, default=SubscriptionStatus.TRIAL
    )
    subscription_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} slug={self.slug!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "location": self.location,
            "address": self.address,
            "industry": self.industry,
            "description": self.description,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "currency": self.currency,
            "is_active": self.is_active,
            "subscription_status": self.subscription_status.value,
            "subscription_expires_at": to_utc_z(self.subscription_expires_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StoreInvitation(db.Model):
    """
    Single-use, time-boxed invitation for a new Staff/Manager user.

    LIFECYCLE: created by a Manager/SystemAdmin, consumed once by
    accept_invitation (is_used=True), otherwise expires at expires_at.
    Only the token is sent to the invitee; it is URL-safe and unique.
    """
    __tablename__ = "store_invitations"
    __table_args__ = (
        db.Index("ix_store_invitations_store_email", "store_id", "email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    email = db.Column(db.String(100), nullable=False)
    role = db.Column(enum_column_type(UserRole), nullable=False, default=UserRole.STAFF)
    token = db.Column(db.String(100), nullable=False, unique=True, index=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    is_used = db.Column(db.Boolean, nullable=False, default=False)
    invited_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        # token intentionally omitted; it is only returned once, at creation
        return {
            "id": self.id,
            "store_id": self.store_id,
            "email": self.email,
            "role": self.role.value,
            "expires_at": to_utc_z(self.expires_at),
            "is_used": self.is_used,
            "invited_by_user_id": self.invited_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
