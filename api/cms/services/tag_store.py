"""Tag persistence: lazy creation, lookups and the bulk trending update."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import bindparam, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cms.exceptions import InvalidTagNameError, TagAlreadyExistsError
from cms.models.tag import Tag

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TagUpdate:
    """New derived values for one tag, produced by the trending refresh."""

    tag_id: int
    usage_count: int
    trending_score: float
    updated_at: datetime


def normalize_tag(name: str) -> str:
    return name.strip().lower()


def normalize_tag_names(names: Iterable[str]) -> list[str]:
    """Normalize, drop empties and dedupe, keeping first-seen order."""
    seen: dict[str, None] = {}
    for name in names:
        normalized = normalize_tag(name)
        if normalized:
            seen.setdefault(normalized)
    return list(seen)


async def get_all_tags(session: AsyncSession) -> list[Tag]:
    """All non-deleted tags, most trending first.

    populate_existing keeps already-loaded instances in step with rows
    written by bulk_update_tags, which bypasses the identity map.
    """
    result = await session.execute(
        select(Tag)
        .where(Tag.deleted_at.is_(None))
        .order_by(Tag.trending_score.desc(), Tag.name)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_tag(session: AsyncSession, tag_id: int) -> Optional[Tag]:
    result = await session.execute(
        select(Tag).where(Tag.id == tag_id, Tag.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def create_tag(session: AsyncSession, name: str) -> Tag:
    """Explicitly create a tag.

    Raises InvalidTagNameError for a blank name and TagAlreadyExistsError on a
    taken one. A soft-deleted tag with the same name is restored, as in
    get_or_create_tags.
    """
    normalized = normalize_tag(name)
    if not normalized:
        raise InvalidTagNameError(name)

    result = await session.execute(select(Tag).where(Tag.name == normalized))
    existing = result.scalar_one_or_none()
    if existing is not None:
        if existing.deleted_at is None:
            raise TagAlreadyExistsError(normalized)
        existing.deleted_at = None
        await session.commit()
        log.info("tag_restored", tag_id=existing.id, name=normalized)
        return existing

    tag = Tag(name=normalized, usage_count=0, trending_score=0.0)
    session.add(tag)
    await session.commit()
    log.info("tag_created", tag_id=tag.id, name=normalized)
    return tag


async def get_or_create_tags(session: AsyncSession, names: Iterable[str]) -> list[Tag]:
    """Resolve tag names to Tag rows, creating missing ones on first use.

    A soft-deleted tag whose name is reused is restored rather than
    duplicated (names are unique). New tags are flushed, not committed.
    """
    normalized = normalize_tag_names(names)
    if not normalized:
        return []

    result = await session.execute(select(Tag).where(Tag.name.in_(normalized)))
    by_name = {tag.name: tag for tag in result.scalars().all()}

    created = []
    for name in normalized:
        tag = by_name.get(name)
        if tag is None:
            tag = Tag(name=name, usage_count=0, trending_score=0.0)
            session.add(tag)
            by_name[name] = tag
            created.append(name)
        elif tag.deleted_at is not None:
            tag.deleted_at = None

    if created:
        await session.flush()
        log.info("tags_created", names=created)

    return [by_name[name] for name in normalized]


async def bulk_update_tags(session: AsyncSession, updates: Sequence[TagUpdate]) -> None:
    """Write usage_count, trending_score and updated_at for many tags at once.

    Single executemany UPDATE keyed by id. Caller commits.
    """
    if not updates:
        return

    table = Tag.__table__
    stmt = (
        update(table)
        .where(table.c.id == bindparam("b_id"))
        .values(
            usage_count=bindparam("b_usage_count"),
            trending_score=bindparam("b_trending_score"),
            updated_at=bindparam("b_updated_at"),
        )
    )
    await session.execute(
        stmt,
        [
            {
                "b_id": u.tag_id,
                "b_usage_count": u.usage_count,
                "b_trending_score": u.trending_score,
                "b_updated_at": u.updated_at,
            }
            for u in updates
        ],
    )
