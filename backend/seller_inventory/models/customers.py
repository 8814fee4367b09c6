from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .enums import Gender, enum_column_type


class Customer(db.Model):
    """
    Customer master data, scoped to a store.

    DEFAULT CUSTOMER: each store has at most one is_default=True row, the
    "Anonymous" walk-in customer used when an order names no customer.
    The partial unique index below is what makes concurrent first-use
    provisioning safe; the default customer cannot be edited or deleted.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index(
            "uq_customers_store_default",
            "store_id",
            unique=True,
            sqlite_where=db.text("is_default = 1"),
            postgresql_where=db.text("is_default"),
        ),
        db.Index("ix_customers_store_active", "store_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)

    name = db.Column(db.String(100), nullable=False)
    gender = db.Column(enum_column_type(Gender), nullable=False, default=Gender.UNKNOWN)
    mobile = db.Column(db.String(20), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    account_number = db.Column(db.String(32), nullable=False, unique=True)

    is_default = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "gender": self.gender.value,
            "mobile": self.mobile,
            "address": self.address,
            "account_number": self.account_number,
            "is_default": self.is_default,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
