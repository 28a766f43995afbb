"""Structured error kinds surfaced by the carbon accounting core."""

from __future__ import annotations


class CarbonError(Exception):
    """Base class for errors that map to a structured API response."""

    code = "INTERNAL"
    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidInputError(CarbonError):
    """Non-positive quantity or malformed field."""

    code = "INVALID_INPUT"
    status_code = 400


class UnknownTypeError(CarbonError):
    """Category/activity type pair absent from the emission factor table."""

    code = "UNKNOWN_TYPE"
    status_code = 400


class NotFoundError(CarbonError):
    """Referenced profile or user is missing."""

    code = "NOT_FOUND"
    status_code = 404


class StorageFailureError(CarbonError):
    """Underlying store error. The public message never carries driver detail."""

    code = "STORAGE_FAILURE"
    status_code = 500

    def __init__(self, message: str = "Storage failure") -> None:
        super().__init__(message)


class ConflictError(CarbonError):
    """Optimistic-concurrency attempts exhausted."""

    code = "CONFLICT"
    status_code = 409
