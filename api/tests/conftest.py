"""Shared fixtures: in-memory SQLite database and corpus builders."""

from collections.abc import Sequence
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cms.database import get_db
from cms.main import app
from cms.models import Article, ArticleVersion, Base, VersionStatus
from cms.models.base import utcnow
from cms.services.tag_store import get_or_create_tags

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """HTTP client against the app, with requests served from the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_article(db_session):
    """Build an article directly, bypassing the version workflow.

    Version 1 carries `tags` and is published when `published` is set.
    `draft_tags` adds a newer draft version that becomes the latest one,
    so latest-scope and published-scope tags can differ.
    """

    async def _make(
        tags: Sequence[str],
        published: bool = True,
        draft_tags: Optional[Sequence[str]] = None,
        deleted: bool = False,
    ) -> Article:
        article = Article(title="article", deleted_at=utcnow() if deleted else None)
        db_session.add(article)
        await db_session.flush()

        first = ArticleVersion(
            article_id=article.id,
            version_number=1,
            title="v1",
            content="",
            status=VersionStatus.published.value if published else VersionStatus.draft.value,
            published_at=utcnow() if published else None,
            tags=await get_or_create_tags(db_session, tags),
        )
        db_session.add(first)
        await db_session.flush()
        article.latest_version_id = first.id
        if published:
            article.published_version_id = first.id

        if draft_tags is not None:
            draft = ArticleVersion(
                article_id=article.id,
                version_number=2,
                title="v2",
                content="",
                status=VersionStatus.draft.value,
                tags=await get_or_create_tags(db_session, draft_tags),
            )
            db_session.add(draft)
            await db_session.flush()
            article.latest_version_id = draft.id

        await db_session.commit()
        return article

    return _make
