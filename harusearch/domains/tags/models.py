"""
Tag Models - Data types for tags domain.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class TagResult(BaseModel):
    """Tag annotated with how many companions currently bear it."""

    id: str
    name: str
    description: str | None = None
    companion_count: int = Field(default=0, ge=0)
