"""FastAPI dependencies for the services built by the app lifespan (see shadowlog.main)."""
from typing import Any

from fastapi import Request

from shadowlog.config import Settings
from shadowlog.services.ai_service import AIService
from shadowlog.services.enrichment import EnrichmentOrchestrator


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_enrichment(request: Request) -> EnrichmentOrchestrator:
    return request.app.state.enrichment


def get_redis(request: Request) -> Any:
    return request.app.state.redis


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
