"""Article version endpoints.

POST /api/v1/articles                                      -- article + first draft
POST /api/v1/articles/{article_id}/versions                -- new draft version
PUT  /api/v1/articles/{article_id}/versions/{version_id}/status

Each write triggers relationship scoring and/or the trending refresh (see
services/versions.py). Not-found and invalid-status errors are CMSErrors
rendered by the app-level handler.
"""

from fastapi import APIRouter

from cms.dependencies import DbSession
from cms.schemas.article import (
    ArticleCreate,
    ArticleVersionCreate,
    ArticleVersionResponse,
    VersionStatusUpdate,
)
from cms.services.versions import create_article, create_version, update_version_status

router = APIRouter(prefix="/api/v1", tags=["articles"])


@router.post("/articles", response_model=ArticleVersionResponse, status_code=201)
async def create_article_endpoint(body: ArticleCreate, db: DbSession) -> ArticleVersionResponse:
    """Create an article; returns its first version with the relationship score."""
    version = await create_article(db, body.title, body.content, body.tags)
    return ArticleVersionResponse.model_validate(version)


@router.post(
    "/articles/{article_id}/versions",
    response_model=ArticleVersionResponse,
    status_code=201,
)
async def create_version_endpoint(
    article_id: int, body: ArticleVersionCreate, db: DbSession
) -> ArticleVersionResponse:
    version = await create_version(db, article_id, body.title, body.content, body.tags)
    return ArticleVersionResponse.model_validate(version)


@router.put(
    "/articles/{article_id}/versions/{version_id}/status",
    response_model=ArticleVersionResponse,
)
async def update_version_status_endpoint(
    article_id: int, version_id: int, body: VersionStatusUpdate, db: DbSession
) -> ArticleVersionResponse:
    version = await update_version_status(db, article_id, version_id, body.status)
    return ArticleVersionResponse.model_validate(version)
