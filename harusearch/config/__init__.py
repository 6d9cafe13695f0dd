"""
Configuration - Application settings and error taxonomy.
"""

from .errors import (
    AccessDeniedError,
    AuthenticationError,
    ConflictError,
    ErrorCode,
    HaruSearchError,
    InvalidInputError,
    StorageError,
    StorageTimeoutError,
)
from .settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Errors
    "ErrorCode",
    "HaruSearchError",
    "AccessDeniedError",
    "InvalidInputError",
    "AuthenticationError",
    "StorageError",
    "StorageTimeoutError",
    "ConflictError",
]
