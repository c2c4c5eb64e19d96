"""Pydantic schemas for tag endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from cms.config import settings


class TagCreate(BaseModel):
    """Request schema for explicitly creating a tag."""

    name: str = Field(min_length=1, max_length=100)


class TagResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    usage_count: int
    trending_score: float
    created_at: datetime
    updated_at: datetime


class TagListResponse(BaseModel):
    tags: list[TagResponse]


class TagScoreRequest(BaseModel):
    """Ad-hoc relationship score for a tag set against the current corpus."""

    # max_length on list applies to the number of tags
    tags: list[str] = Field(default_factory=list, max_length=settings.max_tags_per_version)


class TagScoreResponse(BaseModel):
    tags: list[str]
    score: float


class TrendingRefreshResponse(BaseModel):
    updated: int
