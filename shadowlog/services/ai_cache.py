"""
Two-tier cache for AI analysis results.
Volatile tier: Redis, optional, TTL-based. Durable tier: ai_cache table, survives restarts.
Lookup: Redis -> DB (unexpired rows only) -> repopulate Redis on DB hit.
Write-through: Redis SETEX + DB upsert. The tiers are never required to agree.
All Redis and DB errors are handled internally; never raise to caller. A failure is a miss (get) or a no-op (put).
"""
import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from shadowlog.database import Database
from shadowlog.models.ai_cache import AiCache

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "ai:"
DEFAULT_REPOPULATE_TTL = 3600

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_DIALECT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _redis_key(key: str) -> str:
    return f"{CACHE_KEY_PREFIX}{key}"


class AnalysisCache:
    """
    get(key, kind) -> result or None; put(key, kind, result, ttl); sweep() -> deleted row count.
    `clock` returns an aware UTC datetime; the DB stores naive UTC like every other timestamp column.
    """

    def __init__(
        self,
        database: Database,
        redis_client: Any = None,
        *,
        repopulate_ttl: int = DEFAULT_REPOPULATE_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._db = database
        self._redis = redis_client
        self._repopulate_ttl = repopulate_ttl
        self._clock = clock

    def _now(self) -> datetime:
        return self._clock().astimezone(timezone.utc).replace(tzinfo=None)

    # ---- public API ----

    async def get(self, key: str, kind: str) -> Any | None:
        cached = await self._volatile_get(key)
        if cached is not None:
            return cached
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self._durable_get, key, kind)
        if result is None:
            return None
        await self._volatile_set(key, result, self._repopulate_ttl)
        return result

    async def put(self, key: str, kind: str, result: Any, ttl: int) -> None:
        await self._volatile_set(key, result, ttl)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._durable_put, key, kind, result, ttl)

    async def sweep(self) -> int:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.sweep_sync)

    # ---- volatile tier ----

    async def _volatile_get(self, key: str) -> Any | None:
        if not self._redis:
            return None
        try:
            raw = await self._redis.get(_redis_key(key))
        except Exception as e:
            logger.warning("Redis AI cache get failed for %s: %s", key, e, exc_info=False)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw.decode() if isinstance(raw, bytes) else raw)
        except (json.JSONDecodeError, TypeError, UnicodeDecodeError):
            logger.warning("Redis AI cache entry %s is not valid JSON; ignoring", key)
            return None

    async def _volatile_set(self, key: str, result: Any, ttl: int) -> None:
        if not self._redis:
            return
        try:
            await self._redis.setex(_redis_key(key), ttl, json.dumps(result, ensure_ascii=False))
        except Exception as e:
            logger.warning("Redis AI cache set failed for %s: %s", key, e, exc_info=False)

    # ---- durable tier (sync; run in executor) ----

    def _durable_get(self, key: str, kind: str) -> Any | None:
        db = self._db.session()
        try:
            row = db.query(AiCache).filter(
                AiCache.key == key,
                AiCache.kind == kind,
                AiCache.expires_at > self._now(),
            ).first()
            return row.result if row else None
        except SQLAlchemyError as e:
            logger.warning("DB AI cache get failed for %s: %s", key, e, exc_info=False)
            return None
        finally:
            db.close()

    def _upsert_statement(self, values: dict):
        insert = _DIALECT_INSERTS.get(self._db.engine.dialect.name)
        if insert is None:
            return None
        stmt = insert(AiCache).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=[AiCache.key],
            set_={
                "kind": stmt.excluded.kind,
                "result": stmt.excluded.result,
                "expires_at": stmt.excluded.expires_at,
                "updated_at": stmt.excluded.updated_at,
            },
        )

    def _durable_put(self, key: str, kind: str, result: Any, ttl: int) -> None:
        now = self._now()
        values = {
            "key": key,
            "kind": kind,
            "result": result,
            "expires_at": now + timedelta(seconds=ttl),
            "created_at": now,
            "updated_at": now,
        }
        db = self._db.session()
        try:
            stmt = self._upsert_statement(values)
            if stmt is not None:
                db.execute(stmt)
            else:
                # No ON CONFLICT support: read-then-write, a concurrent first insert can still collide
                db.merge(AiCache(**values))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("DB AI cache upsert failed for %s: %s", key, e, exc_info=False)
        finally:
            db.close()

    def sweep_sync(self) -> int:
        """Delete durable rows whose expires_at has passed. Missing table (first run) is a no-op."""
        try:
            if not inspect(self._db.engine).has_table(AiCache.__tablename__):
                logger.info("AI cache table not present yet; skipping sweep")
                return 0
        except SQLAlchemyError as e:
            logger.warning("AI cache sweep could not inspect schema: %s", e, exc_info=False)
            return 0
        db = self._db.session()
        try:
            count = db.query(AiCache).filter(AiCache.expires_at <= self._now()).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("AI cache sweep failed: %s", e, exc_info=False)
            return 0
        finally:
            db.close()
        if count:
            logger.info("Cleaned up %d expired AI cache entries", count)
        return count
