"""Periodic cleanup of the durable AI cache: first sweep at startup, failures logged and retried."""

import asyncio
from datetime import datetime

import pytest

from shadowlog.database import Database
from shadowlog.main import create_app
from shadowlog.models.ai_cache import AiCache
from shadowlog.services.cache_sweeper import ai_cache_sweeper


class FlakyCache:
    """sweep() fails on the first call and succeeds afterwards."""

    def __init__(self):
        self.calls = 0
        self.recovered = asyncio.Event()

    async def sweep(self):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("database is locked")
        self.recovered.set()
        return 0


def _cache_keys(database):
    db = database.session()
    try:
        return sorted(r.key for r in db.query(AiCache).all())
    finally:
        db.close()


class TestSweeperLoop:

    @pytest.mark.asyncio
    async def test_failed_sweep_is_logged_and_loop_continues(self, caplog):
        cache = FlakyCache()
        task = asyncio.create_task(ai_cache_sweeper(cache, 0))
        try:
            await asyncio.wait_for(cache.recovered.wait(), timeout=2)
        finally:
            task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert cache.calls >= 2
        assert "Scheduled AI cache sweep failed" in caplog.text

    @pytest.mark.asyncio
    async def test_runs_until_cancelled(self):
        cache = FlakyCache()
        cache.calls = 1
        task = asyncio.create_task(ai_cache_sweeper(cache, 3600))
        await asyncio.wait_for(cache.recovered.wait(), timeout=2)
        assert not task.done()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert cache.calls == 2


class TestStartupSweep:

    @pytest.mark.asyncio
    async def test_expired_rows_removed_at_startup(self, settings):
        seed = Database(settings.database_url)
        seed.create_all()
        db = seed.session()
        try:
            db.add(AiCache(key="old", kind="tags", result=["a"], expires_at=datetime(2000, 1, 1)))
            db.add(AiCache(key="fresh", kind="tags", result=["b"], expires_at=datetime(2999, 1, 1)))
            db.commit()
        finally:
            db.close()

        async def no_redis(url):
            return None

        app = create_app(settings, provider_factory=lambda s: None, redis_factory=no_redis)
        async with app.router.lifespan_context(app):
            for _ in range(100):
                if _cache_keys(seed) == ["fresh"]:
                    break
                await asyncio.sleep(0.02)
            assert _cache_keys(seed) == ["fresh"]
        seed.dispose()
