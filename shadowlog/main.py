import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shadowlog.config import Settings, get_settings
from shadowlog.core.redis import close_redis, connect_redis
from shadowlog.database import Database
from shadowlog.routers import ai, auth, entries, search
from shadowlog.services.ai_cache import AnalysisCache
from shadowlog.services.ai_provider import build_gemini_provider
from shadowlog.services.ai_service import AIService
from shadowlog.services.cache_sweeper import ai_cache_sweeper
from shadowlog.services.enrichment import EnrichmentOrchestrator

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(
    settings: Settings | None = None,
    *,
    provider_factory: Callable[[Settings], Any] = build_gemini_provider,
    redis_factory: Callable[[str], Awaitable[Any]] = connect_redis,
    create_tables: bool = False,
) -> FastAPI:
    """
    Build the app. Services (DB, Redis, Gemini, cache, enrichment, sweeper) are constructed
    in the lifespan, kept on app.state, and closed there on shutdown.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings.database_url)
        if create_tables:
            database.create_all()
        redis_client = await redis_factory(settings.redis_url)
        provider = provider_factory(settings)
        cache = AnalysisCache(
            database,
            redis_client,
            repopulate_ttl=settings.ai_cache_repopulate_ttl_seconds,
        )
        ai_service = AIService(provider, cache, cache_ttl=settings.ai_cache_ttl_seconds)
        enrichment = EnrichmentOrchestrator(ai_service, database)

        app.state.settings = settings
        app.state.database = database
        app.state.redis = redis_client
        app.state.ai_cache = cache
        app.state.ai_service = ai_service
        app.state.enrichment = enrichment

        # First sweep runs immediately, then every interval
        sweeper = asyncio.create_task(ai_cache_sweeper(cache, settings.cache_sweep_interval_seconds))
        logger.info("ShadowLog API started (AI %s)", "enabled" if ai_service.enabled else "disabled")
        try:
            yield
        finally:
            sweeper.cancel()
            try:
                await sweeper
            except asyncio.CancelledError:
                pass
            await enrichment.drain()
            if provider is not None and hasattr(provider, "aclose"):
                await provider.aclose()
            await close_redis(redis_client)
            database.dispose()
            logger.info("ShadowLog API stopped")

    app = FastAPI(title="ShadowLog API", version=VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(auth.router)
    app.include_router(entries.router)
    app.include_router(ai.router)
    app.include_router(search.router)

    @app.get("/")
    def root():
        return {
            "message": "ShadowLog API",
            "version": VERSION,
            "docs": "/docs",
            "endpoints": {
                "auth": "/api/auth",
                "entries": "/api/entries",
                "ai": "/api/ai",
                "search": "/api/search",
                "health": "/health",
            },
        }

    @app.get("/health")
    def health():
        db_ok = app.state.database.health_check()
        return {
            "status": "healthy" if db_ok else "unhealthy",
            "services": {
                "database": "healthy" if db_ok else "unhealthy",
                "redis": "connected" if app.state.redis is not None else "unavailable",
                "ai": "enabled" if app.state.ai_service.enabled else "disabled",
            },
            "version": VERSION,
        }

    return app


app = create_app()
