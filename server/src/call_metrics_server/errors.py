"""Error types raised while filtering and aggregating call records."""

from __future__ import annotations

from typing import Any, ClassVar, Mapping

ErrorDetails = Mapping[str, Any] | None


class ApplicationError(Exception):
    """Base class for call metrics failures.

    ``status_code`` is the HTTP status the API answers with when the error
    escapes a route; ``details`` carries structured context for clients.
    """

    status_code: ClassVar[int] = 500

    def __init__(self, message: str, *, details: ErrorDetails = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})

    def __str__(self) -> str:
        return self.message


class ValidationError(ApplicationError):
    """A filter value was supplied but cannot be interpreted."""

    status_code = 400


class MalformedRecordError(ApplicationError):
    """A conversation record lacks a field or holds an invalid value."""

    def __init__(
        self,
        message: str,
        *,
        record_id: str | None = None,
        field: str | None = None,
        details: ErrorDetails = None,
    ) -> None:
        super().__init__(message, details={"record_id": record_id, "field": field, **(details or {})})
        self.record_id = record_id
        self.field = field


class RecordLoadError(ApplicationError):
    """The conversation dataset file is unreadable or not a JSON array."""


def error_response(error: Exception, *, details: ErrorDetails = None) -> dict[str, Any]:
    """Shape ``error`` as the ``{"error": {...}}`` body returned by the API."""

    merged = dict(getattr(error, "details", None) or {})
    merged.update(details or {})
    return {
        "error": {
            "type": type(error).__name__,
            "message": str(error),
            "details": merged,
        }
    }


__all__ = [
    "ApplicationError",
    "MalformedRecordError",
    "RecordLoadError",
    "ValidationError",
    "error_response",
]
