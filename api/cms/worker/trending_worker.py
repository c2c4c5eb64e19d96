"""Periodic trending refresh.

Writes trigger a refresh, but decay also has to progress while nothing is
being written. This loop re-runs the refresh on a fixed interval with its
own session.
"""

import asyncio

import structlog

from cms.config import settings
from cms.database import async_session_factory
from cms.services.trending import refresh_trending

log = structlog.get_logger(__name__)

# Let the app finish starting before the first pass
INITIAL_DELAY_SECONDS = 30


async def run_trending_refresh() -> int:
    async with async_session_factory() as session:
        return await refresh_trending(session)


async def trending_worker_loop():
    """Background loop that refreshes tag trending scores on a configurable interval."""
    interval = settings.trending_refresh_interval_minutes * 60
    log.info(
        "trending_worker_started",
        interval_minutes=settings.trending_refresh_interval_minutes,
    )

    await asyncio.sleep(INITIAL_DELAY_SECONDS)

    while True:
        try:
            updated = await run_trending_refresh()
            if updated > 0:
                log.info("trending_worker_pass", tags_updated=updated)
        except Exception:
            log.error("trending_worker_error", exc_info=True)
        await asyncio.sleep(interval)
