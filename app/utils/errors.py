"""Domain error kinds and helpers for standardized error responses."""
from typing import Any


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload."""

    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        payload["error"]["details"] = details
    return payload


class DomainError(Exception):
    """Base class for failures surfaced by the alert services."""

    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str, *, details: dict[str, Any] | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code

    def to_payload(self) -> dict[str, Any]:
        return error_response(self.code, self.message, self.details)


class InvalidInput(DomainError):
    """Missing or malformed request data."""

    code = "INVALID_INPUT"
    status_code = 400


class ValidationError(DomainError):
    """An entity field violates its constraints."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFound(DomainError):
    code = "ALERT_NOT_FOUND"
    status_code = 404


class Forbidden(DomainError):
    """The requester is identified but does not own the alert."""

    code = "FORBIDDEN"
    status_code = 403


class StorageFailure(DomainError):
    """The database is unavailable or a query failed; callers may retry."""

    code = "STORAGE_FAILURE"
    status_code = 503


__all__ = [
    "error_response",
    "DomainError",
    "InvalidInput",
    "ValidationError",
    "NotFound",
    "Forbidden",
    "StorageFailure",
]
