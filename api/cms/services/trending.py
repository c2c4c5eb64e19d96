"""Tag usage and trending score refresh.

usage_count and trending_score on Tag are a cached view over the published
corpus. Every refresh recomputes both in full from a fresh snapshot instead
of incrementing on publish/unpublish, so missed triggers cannot leave the
counters drifting:

    usage_count    = articles whose published version carries the tag
    trending_score = usage_count * exp(-age_days / decay_factor)

age_days is measured from the tag's updated_at, which is reset to now only
when usage grows. A tag that stops gaining articles therefore sinks towards
zero, one that keeps gaining stays near its usage count.

Only tags whose values actually changed are written, in one bulk UPDATE.
Runs after any write that can change what is published; concurrent runs
converge on the same values (last write wins).
"""

import math
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cms.config import settings
from cms.metrics import trending_refresh_duration, trending_refresh_failures, trending_tags_updated
from cms.models.tag import Tag
from cms.services.corpus import count_articles_by_tag
from cms.services.tag_store import TagUpdate, bulk_update_tags, get_all_tags

log = structlog.get_logger(__name__)

DEFAULT_DECAY_FACTOR = 7.0
# Float tolerance when deciding whether a stored score is stale
SCORE_TOLERANCE = 1e-6

SECONDS_PER_DAY = 86400.0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def age_in_days(updated_at: datetime, now: datetime) -> float:
    """Days elapsed since updated_at, never negative."""
    delta = _as_utc(now) - _as_utc(updated_at)
    return max(0.0, delta.total_seconds() / SECONDS_PER_DAY)


def trending_score(
    usage_count: int,
    updated_at: datetime,
    now: datetime,
    decay_factor: float = DEFAULT_DECAY_FACTOR,
) -> float:
    return usage_count * math.exp(-age_in_days(updated_at, now) / decay_factor)


def compute_tag_updates(
    tags: Sequence[Tag],
    published_usage: Mapping[int, int],
    now: datetime,
    decay_factor: float = DEFAULT_DECAY_FACTOR,
) -> list[TagUpdate]:
    """Derive new usage/trending values from a corpus snapshot.

    Pure: reads the tags, never mutates them. Returns updates only for tags
    whose usage_count changed or whose trending_score moved by more than
    SCORE_TOLERANCE.
    """
    updates = []
    for tag in tags:
        new_usage = published_usage.get(tag.id, 0)
        new_score = trending_score(new_usage, tag.updated_at, now, decay_factor)

        usage_changed = new_usage != tag.usage_count
        score_changed = abs(new_score - tag.trending_score) > SCORE_TOLERANCE
        if not (usage_changed or score_changed):
            continue

        # Renewed popularity restarts the decay clock
        updated_at = now if new_usage > tag.usage_count else tag.updated_at
        updates.append(
            TagUpdate(
                tag_id=tag.id,
                usage_count=new_usage,
                trending_score=new_score,
                updated_at=updated_at,
            )
        )
    return updates


async def refresh_trending(
    session: AsyncSession,
    now: Optional[datetime] = None,
    decay_factor: Optional[float] = None,
) -> int:
    """Recompute usage_count and trending_score for every tag and persist changes.

    Best-effort: a query or write failure is logged, the session rolled back
    and the pass abandoned, leaving the previous values in place.

    Returns:
        Number of tags written (0 when nothing changed or the pass failed).
    """
    now = now or datetime.now(timezone.utc)
    decay_factor = decay_factor or settings.trending_decay_days

    with trending_refresh_duration.time():
        try:
            published_usage = await count_articles_by_tag(session)
            tags = await get_all_tags(session)
        except Exception:
            trending_refresh_failures.labels(stage="query").inc()
            log.error("trending_refresh_query_failed", exc_info=True)
            await session.rollback()
            return 0

        updates = compute_tag_updates(tags, published_usage, now, decay_factor)
        if not updates:
            log.debug("trending_refresh_noop", tags_evaluated=len(tags))
            return 0

        try:
            await bulk_update_tags(session, updates)
            await session.commit()
        except Exception:
            trending_refresh_failures.labels(stage="persist").inc()
            log.error("trending_refresh_persist_failed", dirty_tags=len(updates), exc_info=True)
            await session.rollback()
            return 0

    trending_tags_updated.inc(len(updates))
    log.info(
        "trending_refresh_completed",
        tags_evaluated=len(tags),
        tags_updated=len(updates),
    )
    return len(updates)
