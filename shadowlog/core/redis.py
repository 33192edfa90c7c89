"""
Optional async Redis client for the AI result cache (volatile tier).
If redis_url is empty or the connection fails, returns None and the cache runs on the DB tier only.
The client is created and closed by the app lifespan.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)


def _display_url(url: str) -> str:
    return url.split("@")[-1] if "@" in url else url


async def connect_redis(url: str) -> Any:
    """One async Redis client, or None if disabled/unavailable."""
    url = (url or "").strip()
    if not url:
        return None
    try:
        from redis.asyncio import Redis
        client = Redis.from_url(url, decode_responses=True)
        await client.ping()
        logger.info("Redis AI cache connected: %s", _display_url(url))
        return client
    except Exception as e:
        logger.warning("Redis unavailable (volatile AI cache disabled): %s", e, exc_info=False)
        return None


async def close_redis(client: Any) -> None:
    """Graceful shutdown: close Redis connection."""
    if client is None:
        return
    try:
        await client.aclose()
    except Exception as e:
        logger.warning("Redis close error: %s", e)
