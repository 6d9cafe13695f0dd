"""
Tag Aggregation - Fold companion/tag join rows into one result per companion.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from .models import CompanionResult, CreatorSummary, TagSummary

__all__ = ["TagAggregator"]


class TagAggregator:
    """
    Groups raw (companion, tag) rows by companion id.

    Row order is preserved: the first row seen for a companion fixes its
    position, so the store's rank order survives the fold. Rows with a NULL
    tag contribute no tag, leaving an empty list for untagged companions.
    """

    def fold(self, rows: Iterable[dict[str, Any]]) -> list[CompanionResult]:
        """Fold joined rows into companion results."""
        companions: dict[str, CompanionResult] = {}

        for row in rows:
            companion = companions.get(row["id"])
            if companion is None:
                companion = self._to_companion(row)
                companions[companion.id] = companion

            tag_id = row.get("tag_id")
            if tag_id is not None and all(t.id != tag_id for t in companion.tags):
                companion.tags.append(TagSummary(id=tag_id, name=row["tag_name"]))

        return list(companions.values())

    @staticmethod
    def _to_companion(row: dict[str, Any]) -> CompanionResult:
        return CompanionResult(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            image_url=row.get("image_url"),
            is_public=bool(row["is_public"]),
            creator=CreatorSummary(
                username=row.get("creator_username"),
                display_name=row.get("creator_display_name"),
            ),
            relevance=abs(row.get("score") or 0.0),  # BM25 scores are negative
        )
