"""Tests for the periodic trending refresh worker."""

import asyncio

import pytest

from cms.worker import trending_worker


async def test_run_trending_refresh_uses_own_session(session_factory, make_article, monkeypatch):
    await make_article(["go", "api"])
    monkeypatch.setattr(trending_worker, "async_session_factory", session_factory)

    assert await trending_worker.run_trending_refresh() == 2
    assert await trending_worker.run_trending_refresh() == 0


async def test_worker_loop_survives_failed_pass(monkeypatch):
    calls = []

    async def flaky_refresh():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("database unavailable")
        if len(calls) == 3:
            raise asyncio.CancelledError
        return 1

    async def no_sleep(_seconds):
        return None

    monkeypatch.setattr(trending_worker, "run_trending_refresh", flaky_refresh)
    monkeypatch.setattr(trending_worker.asyncio, "sleep", no_sleep)

    with pytest.raises(asyncio.CancelledError):
        await trending_worker.trending_worker_loop()

    assert len(calls) == 3
