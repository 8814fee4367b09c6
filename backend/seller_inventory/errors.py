# Overview: Error kinds raised by the service layer and mapped to HTTP status codes at the edge.

"""
Service Error Kinds

Every failure the core can report falls into one of four kinds:

- NotFoundError: referenced entity absent, or (on read paths) owned by another store
- ForbiddenError: caller is authenticated but may not mutate the target
- InvalidOperationError: business-rule violation (stock, payments, lifecycle, input)
- PersistenceError: the database refused the commit; nothing was written

Routes never build these; services raise them and the app-level error handler
turns them into JSON responses.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for all service-layer failures."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(ServiceError):
    status_code = 404


class ForbiddenError(ServiceError):
    status_code = 403


class InvalidOperationError(ServiceError):
    status_code = 400


class ValidationError(InvalidOperationError):
    """Malformed input rejected at the boundary (bad enum text, blank names, negative amounts)."""


class AuthenticationError(ServiceError):
    status_code = 401


class PersistenceError(ServiceError):
    """
    Commit failure. The unit of work has already rolled back.

    conflict=True means a unique/foreign-key constraint rejected the write.
    """

    def __init__(self, message: str, details: dict | None = None, *, conflict: bool = False):
        super().__init__(message, details)
        self.conflict = conflict

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 409 if self.conflict else 500
