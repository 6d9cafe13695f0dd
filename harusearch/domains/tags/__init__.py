"""
Tags Domain - Global tag catalog used for companion creation and filtering.

This domain handles:
- Alphabetical tag listing with companion counts
- Substring/prefix tag lookup
- Tag creation
"""

from .catalog import TagCatalogService
from .contracts import TagCatalog
from .models import TagResult

__all__ = [
    "TagCatalog",
    "TagResult",
    "TagCatalogService",
]
