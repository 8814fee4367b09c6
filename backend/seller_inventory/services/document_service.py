# Overview: Human-readable reference numbers for orders, invoices and customer accounts.

from __future__ import annotations

import secrets
import string
from datetime import datetime

from ..time_utils import date_stamp

ORDER_PREFIX = "ORD"
INVOICE_PREFIX = "INV"
CUSTOMER_PREFIX = "CUST"

_ALPHABET = string.ascii_uppercase + string.digits
_SUFFIX_LENGTH = 8


def random_suffix(length: int = _SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def reference_number(prefix: str, *, now: datetime | None = None) -> str:
    """
    Build "{prefix}-{yyyyMMdd}-{8 x A-Z0-9}", e.g. "ORD-20260105-7QK2M9XA".

    Uniqueness is enforced by the column's unique index. With 36**8 suffixes
    per day a collision is treated as negligible and is not retried; if one
    ever happens the commit fails with PersistenceError.
    """
    return f"{prefix}-{date_stamp(now)}-{random_suffix()}"


def next_order_number(now: datetime | None = None) -> str:
    return reference_number(ORDER_PREFIX, now=now)


def next_invoice_number(now: datetime | None = None) -> str:
    return reference_number(INVOICE_PREFIX, now=now)


def next_account_number(now: datetime | None = None) -> str:
    return reference_number(CUSTOMER_PREFIX, now=now)
