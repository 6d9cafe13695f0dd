"""
Error Taxonomy - Consistent error codes across the application.

Usage:
    from harusearch.config.errors import AccessDeniedError

    raise AccessDeniedError("Chat not found or access denied", {"chat_id": chat_id})
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error responses."""

    # Search errors
    SEARCH_ACCESS_DENIED = "SEARCH_ACCESS_DENIED"

    # Storage errors
    STORAGE_CONNECTION_FAILED = "STORAGE_CONNECTION_FAILED"
    STORAGE_READ_FAILED = "STORAGE_READ_FAILED"
    STORAGE_WRITE_FAILED = "STORAGE_WRITE_FAILED"
    STORAGE_TIMEOUT = "STORAGE_TIMEOUT"
    STORAGE_CONFLICT = "STORAGE_CONFLICT"

    # Security errors
    SECURITY_UNAUTHORIZED = "SECURITY_UNAUTHORIZED"
    SECURITY_FORBIDDEN = "SECURITY_FORBIDDEN"
    SECURITY_RATE_LIMITED = "SECURITY_RATE_LIMITED"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"


class HaruSearchError(Exception):
    """Base exception with error code support."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


# Domain-specific exceptions for cleaner imports
class AccessDeniedError(HaruSearchError):
    """Caller addressed a resource they do not own."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.SEARCH_ACCESS_DENIED, message, details)


class InvalidInputError(HaruSearchError):
    """Rejected input on write paths (search input never raises this)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.VALIDATION_ERROR, message, details)


class AuthenticationError(HaruSearchError):
    """Missing or invalid caller identity."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCode.SECURITY_UNAUTHORIZED, message, details)


class StorageError(HaruSearchError):
    """Storage/database errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
    ) -> None:
        super().__init__(code, message, details)


class StorageTimeoutError(StorageError):
    """A store query exceeded its time budget."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details, code=ErrorCode.STORAGE_TIMEOUT)


class ConflictError(StorageError):
    """Unique constraint violated on write."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details, code=ErrorCode.STORAGE_CONFLICT)
