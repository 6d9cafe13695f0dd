"""
Adapters - External service integrations.

All store access is wrapped here to isolate domains from driver and schema details.
"""

from .sqlite import SQLiteRepository

__all__ = ["SQLiteRepository"]
