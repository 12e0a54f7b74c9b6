from __future__ import annotations

from typing import Any, Optional


class RentalApiError(Exception):
    """
    Base class for domain errors raised by services.

    Each error carries a machine-readable `type` code. The API layer maps the
    type to an HTTP status and renders it in the standard ErrorResponse envelope;
    routes never catch these themselves.
    """

    type: str = "unknown_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(RentalApiError):
    """Entity could not be found by id, handle or selector."""

    type = "not_found"


class InvalidDataError(RentalApiError):
    """Structural or business-rule violation in the provided data."""

    type = "invalid_data"


class DuplicateError(RentalApiError):
    """Uniqueness violation (duplicate option title, duplicate variant, ...)."""

    type = "duplicate_error"
