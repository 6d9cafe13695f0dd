"""
Tag Routes - Tag catalog for companion creation and filtering.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from harusearch.domains.tags import TagCatalogService, TagResult
from harusearch.interfaces.api.auth import UserContext, get_current_user
from harusearch.interfaces.api.deps import get_tag_catalog

router = APIRouter()


class CreateTagRequest(BaseModel):
    """Tag creation body."""

    name: str = Field(..., min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=500)


@router.get("", response_model=list[TagResult])
async def list_tags(
    catalog: TagCatalogService = Depends(get_tag_catalog),
) -> list[TagResult]:
    """All tags alphabetically with companion counts."""
    return await catalog.list_all_tags()


@router.get("/search", response_model=list[TagResult])
async def search_tags(
    q: str = Query("", max_length=50),
    catalog: TagCatalogService = Depends(get_tag_catalog),
) -> list[TagResult]:
    """Tags whose name contains the query (case-insensitive)."""
    return await catalog.search_tags_by_prefix(q)


@router.post("", response_model=TagResult, status_code=status.HTTP_201_CREATED)
async def create_tag(
    request: CreateTagRequest,
    user: UserContext = Depends(get_current_user),
    catalog: TagCatalogService = Depends(get_tag_catalog),
) -> TagResult:
    """Create a tag. Returns 409 if the name is taken."""
    return await catalog.create_tag(request.name, request.description)
