from __future__ import annotations

from enum import Enum

from ..errors import ValidationError


class _ParsableEnum(str, Enum):
    """
    Closed enumeration stored by value.

    parse() is the only way free text becomes a member; anything it does not
    recognise is a ValidationError, never a bare ValueError/KeyError.
    """

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            needle = value.strip().lower()
            for member in cls:
                if needle in (member.value.lower(), member.name.lower()):
                    return member
        allowed = ", ".join(m.value for m in cls)
        raise ValidationError(
            f"Invalid {cls.__name__}: {value!r}. Must be one of {allowed}",
            details={"field": cls.__name__, "allowed": [m.value for m in cls]},
        )

    def __str__(self) -> str:
        return self.value


class UserRole(_ParsableEnum):
    STAFF = "Staff"
    MANAGER = "Manager"
    SYSTEM_ADMIN = "SystemAdmin"


# Roles that a store can hand out through an invitation
INVITABLE_ROLES = (UserRole.STAFF, UserRole.MANAGER)


class OrderStatus(_ParsableEnum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    FINISHED = "Finished"


class PaymentStatus(_ParsableEnum):
    NOT_PAID = "NotPaid"
    PARTIAL_PAID = "PartialPaid"
    PAID = "Paid"


class Gender(_ParsableEnum):
    UNKNOWN = "Unknown"
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class SubscriptionStatus(_ParsableEnum):
    TRIAL = "Trial"
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"


def enum_column_type(enum_cls):
    """SQLAlchemy column type persisting the member value as plain text."""
    from ..extensions import db

    return db.Enum(
        enum_cls,
        native_enum=False,
        length=16,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
