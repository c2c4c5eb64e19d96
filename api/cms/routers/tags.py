"""Tag endpoints.

GET  /api/v1/tags          -- all tags, most trending first
GET  /api/v1/tags/{id}     -- one tag
POST /api/v1/tags          -- create a tag explicitly (409 on duplicate name)
POST /api/v1/tags/score    -- PMI relationship score of an ad-hoc tag set
POST /api/v1/tags/refresh  -- run the usage/trending refresh now
"""

from fastapi import APIRouter, HTTPException

from cms.dependencies import DbSession
from cms.exceptions import InvalidTagNameError, TagAlreadyExistsError
from cms.schemas.tag import (
    TagCreate,
    TagListResponse,
    TagResponse,
    TagScoreRequest,
    TagScoreResponse,
    TrendingRefreshResponse,
)
from cms.services.relationship import score_tags
from cms.services.tag_store import create_tag, get_all_tags, get_tag, normalize_tag_names
from cms.services.trending import refresh_trending

router = APIRouter(prefix="/api/v1", tags=["tags"])


@router.get("/tags", response_model=TagListResponse)
async def list_tags(db: DbSession) -> TagListResponse:
    """Return all tags ordered by trending score, highest first."""
    tags = await get_all_tags(db)
    return TagListResponse(tags=[TagResponse.model_validate(t) for t in tags])


@router.post("/tags", response_model=TagResponse, status_code=201)
async def create_tag_endpoint(body: TagCreate, db: DbSession) -> TagResponse:
    try:
        tag = await create_tag(db, body.name)
    except InvalidTagNameError as exc:
        raise HTTPException(status_code=422, detail=exc.message) from exc
    except TagAlreadyExistsError as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    return TagResponse.model_validate(tag)


@router.post("/tags/score", response_model=TagScoreResponse)
async def score_tag_set(body: TagScoreRequest, db: DbSession) -> TagScoreResponse:
    """Score how strongly the given tags co-occur across the corpus.

    Uses the same latest-version scope as version scoring. Fewer than two
    distinct tags always score 0.0.
    """
    tags = normalize_tag_names(body.tags)
    score = await score_tags(db, tags)
    return TagScoreResponse(tags=tags, score=score)


@router.post("/tags/refresh", response_model=TrendingRefreshResponse)
async def refresh_tag_trending(db: DbSession) -> TrendingRefreshResponse:
    updated = await refresh_trending(db)
    return TrendingRefreshResponse(updated=updated)


@router.get("/tags/{tag_id}", response_model=TagResponse)
async def get_tag_endpoint(tag_id: int, db: DbSession) -> TagResponse:
    tag = await get_tag(db, tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    return TagResponse.model_validate(tag)
