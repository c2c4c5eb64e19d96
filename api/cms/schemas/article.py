"""Pydantic schemas for article and version endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from cms.config import settings
from cms.schemas.tag import TagResponse


class ArticleCreate(BaseModel):
    """Request schema for creating an article with its first draft version."""

    title: str = Field(min_length=1, max_length=255)
    content: str
    # max_length on list applies to the number of tags
    tags: list[str] = Field(default_factory=list, max_length=settings.max_tags_per_version)


class ArticleVersionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str
    tags: list[str] = Field(default_factory=list, max_length=settings.max_tags_per_version)


class VersionStatusUpdate(BaseModel):
    # Validated by the workflow so an unknown status maps to InvalidStatusError
    status: str


class ArticleVersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    article_id: int
    version_number: int
    title: str
    content: str
    status: str
    article_tag_relationship_score: float
    published_at: Optional[datetime] = None
    tags: list[TagResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
