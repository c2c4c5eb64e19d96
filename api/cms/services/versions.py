"""Article version workflow.

Creates articles and versions and moves versions between draft, published
and archived_version. After each write it triggers the tag subsystem:

- new version  -> relationship score for the article's latest tags, then a
                  trending refresh
- status change -> trending refresh

The triggering write is committed first. Scoring and the refresh are
best-effort and roll back only their own work on failure, so neither can
undo or fail the version write.

At most one version per article is published: publishing a version
archives the previously published one.
"""

from collections.abc import Iterable
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cms.exceptions import ArticleNotFoundError, InvalidStatusError, VersionNotFoundError
from cms.metrics import tag_score_failures
from cms.models.article import Article
from cms.models.article_version import ArticleVersion, VersionStatus
from cms.services.relationship import score_for_article
from cms.services.tag_store import get_or_create_tags
from cms.services.trending import refresh_trending

log = structlog.get_logger(__name__)


async def _get_article(session: AsyncSession, article_id: int) -> Article:
    result = await session.execute(
        select(Article)
        .where(Article.id == article_id, Article.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    article = result.scalar_one_or_none()
    if article is None:
        raise ArticleNotFoundError(article_id)
    return article


async def _get_version(
    session: AsyncSession, article_id: int, version_id: int
) -> ArticleVersion:
    result = await session.execute(
        select(ArticleVersion)
        .where(
            ArticleVersion.id == version_id,
            ArticleVersion.article_id == article_id,
            ArticleVersion.deleted_at.is_(None),
        )
        .execution_options(populate_existing=True)
    )
    version = result.scalar_one_or_none()
    if version is None:
        raise VersionNotFoundError(article_id, version_id)
    return version


async def _next_version_number(session: AsyncSession, article_id: int) -> int:
    # Soft-deleted versions still hold their numbers
    result = await session.execute(
        select(func.max(ArticleVersion.version_number)).where(
            ArticleVersion.article_id == article_id
        )
    )
    current = result.scalar_one_or_none()
    return (current or 0) + 1


async def _score_latest_version(session: AsyncSession, article_id: int, version_id: int) -> float:
    score = await score_for_article(session, article_id)
    if score == 0.0:
        return score

    try:
        await session.execute(
            update(ArticleVersion)
            .where(ArticleVersion.id == version_id)
            .values(article_tag_relationship_score=score)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    except Exception:
        tag_score_failures.inc()
        log.error(
            "version_score_persist_failed",
            article_id=article_id,
            version_id=version_id,
            exc_info=True,
        )
        await session.rollback()
        return 0.0
    return score


async def create_article(
    session: AsyncSession, title: str, content: str, tag_names: Iterable[str]
) -> ArticleVersion:
    """Create an article with its first (draft) version.

    Returns the created version with tags and relationship score loaded.
    """
    tags = await get_or_create_tags(session, tag_names)

    article = Article(title=title)
    session.add(article)
    await session.flush()

    version = ArticleVersion(
        article_id=article.id,
        version_number=1,
        title=title,
        content=content,
        status=VersionStatus.draft.value,
        tags=tags,
    )
    session.add(version)
    await session.flush()

    article.latest_version_id = version.id
    article_id, version_id = article.id, version.id
    await session.commit()
    log.info("article_created", article_id=article_id, version_id=version_id, tag_count=len(tags))

    score = await _score_latest_version(session, article_id, version_id)
    log.info("version_scored", article_id=article_id, version_id=version_id, score=score)
    await refresh_trending(session)

    return await _get_version(session, article_id, version_id)


async def create_version(
    session: AsyncSession,
    article_id: int,
    title: str,
    content: str,
    tag_names: Iterable[str],
) -> ArticleVersion:
    """Add a new draft version and make it the article's latest version."""
    article = await _get_article(session, article_id)
    version_number = await _next_version_number(session, article_id)
    tags = await get_or_create_tags(session, tag_names)

    version = ArticleVersion(
        article_id=article_id,
        version_number=version_number,
        title=title,
        content=content,
        status=VersionStatus.draft.value,
        tags=tags,
    )
    session.add(version)
    await session.flush()

    article.latest_version_id = version.id
    version_id = version.id
    await session.commit()
    log.info(
        "version_created",
        article_id=article_id,
        version_id=version_id,
        version_number=version_number,
        tag_count=len(tags),
    )

    score = await _score_latest_version(session, article_id, version_id)
    log.info("version_scored", article_id=article_id, version_id=version_id, score=score)
    await refresh_trending(session)

    return await _get_version(session, article_id, version_id)


async def update_version_status(
    session: AsyncSession, article_id: int, version_id: int, status: str
) -> ArticleVersion:
    """Move a version to draft, published or archived_version.

    Publishing archives the article's currently published version (if it is
    another one). Taking the published version to draft or archived clears
    the article's published pointer. Archiving clears published_at, going
    back to draft keeps it.
    """
    try:
        new_status = VersionStatus(status)
    except ValueError:
        raise InvalidStatusError(status) from None

    article = await _get_article(session, article_id)
    version = await _get_version(session, article_id, version_id)
    previous_published_id = article.published_version_id
    now = datetime.now(timezone.utc)

    if new_status is VersionStatus.published:
        if previous_published_id is not None and previous_published_id != version.id:
            await session.execute(
                update(ArticleVersion)
                .where(ArticleVersion.id == previous_published_id)
                .values(status=VersionStatus.archived_version.value)
                .execution_options(synchronize_session=False)
            )
        version.published_at = now
        article.published_version_id = version.id
    else:
        if previous_published_id == version.id:
            article.published_version_id = None
        if new_status is VersionStatus.archived_version:
            version.published_at = None

    version.status = new_status.value
    await session.commit()
    log.info(
        "version_status_updated",
        article_id=article_id,
        version_id=version_id,
        status=new_status.value,
        archived_version_id=(
            previous_published_id
            if new_status is VersionStatus.published and previous_published_id not in (None, version_id)
            else None
        ),
    )

    await refresh_trending(session)
    return await _get_version(session, article_id, version_id)
