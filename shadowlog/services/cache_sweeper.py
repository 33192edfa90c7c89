"""Background task: delete expired AI cache rows once at start, then every interval."""
import asyncio
import logging

from shadowlog.services.ai_cache import AnalysisCache

logger = logging.getLogger(__name__)


async def ai_cache_sweeper(cache: AnalysisCache, interval: float) -> None:
    """Runs until cancelled. A failed sweep is logged and retried at the next interval."""
    while True:
        try:
            await cache.sweep()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled AI cache sweep failed")
        await asyncio.sleep(interval)
