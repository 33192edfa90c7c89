"""
Direct AI endpoints (authenticated, per-user daily limit):
- POST /api/ai/analyze: any subset of sentiment/tags/summary, computed concurrently (cached)
- POST /api/ai/sentiment, /ai/tags, /ai/summary: single kind (cached)
- POST /api/ai/writing-assist: suggestions for continuing an entry (not cached)
- GET /api/ai/health: Redis and provider status
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from shadowlog.auth import get_current_user
from shadowlog.config import Settings
from shadowlog.core.exceptions import AnalysisError
from shadowlog.database import get_db
from shadowlog.dependencies import get_ai_service, get_app_settings, get_redis
from shadowlog.models.user import User
from shadowlog.schemas.ai import (
    AiAnalyzeRequest,
    AiAnalyzeResponse,
    AiContentRequest,
    AiHealthResponse,
    AiSentimentResponse,
    AiSummaryResponse,
    AiTagsResponse,
    WritingAssistRequest,
    WritingAssistResponse,
)
from shadowlog.services.ai_rate_limiter import check_ai_limit, log_usage
from shadowlog.services.ai_service import AIService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])

AI_UNAVAILABLE = "AI service temporarily unavailable. Please try again later."


def ai_quota(feature: str):
    """Dependency: current user, after checking and recording one call against the daily AI limit."""

    def _dep(
        db: Session = Depends(get_db),
        user: User = Depends(get_current_user),
        settings: Settings = Depends(get_app_settings),
    ) -> User:
        allowed, err = check_ai_limit(db, user.id, settings.ai_daily_limit)
        if not allowed:
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=err)
        log_usage(db, user.id, feature)
        return user

    return _dep


def _require_provider(ai: AIService = Depends(get_ai_service)) -> AIService:
    if not ai.enabled:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="AI writing assistance is not configured")
    return ai


def _bad_gateway() -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=AI_UNAVAILABLE)


# ---------- Health ----------


@router.get("/health", response_model=AiHealthResponse)
async def ai_health(
    redis_client: Any = Depends(get_redis),
    ai: AIService = Depends(get_ai_service),
):
    """Redis (volatile cache tier) and Gemini provider status. DB not checked here."""
    provider = "configured" if ai.enabled else "not_configured"
    if redis_client is None:
        return AiHealthResponse(redis="unavailable", provider=provider)
    try:
        await redis_client.ping()
        return AiHealthResponse(redis="ok", provider=provider)
    except Exception as e:
        logger.warning("Redis health ping failed: %s", e)
        return AiHealthResponse(redis="error", provider=provider)


# ---------- Analyze ----------


@router.post("/analyze", response_model=AiAnalyzeResponse)
async def ai_analyze(
    body: AiAnalyzeRequest,
    user: User = Depends(ai_quota("analyze")),
    ai: AIService = Depends(get_ai_service),
):
    try:
        results = await ai.analyze(body.content, body.features)
    except AnalysisError as e:
        logger.warning("AI analyze failed for user %s: %s", user.id, e)
        raise _bad_gateway() from e
    return AiAnalyzeResponse(**results)


@router.post("/sentiment", response_model=AiSentimentResponse)
async def ai_sentiment(
    body: AiContentRequest,
    user: User = Depends(ai_quota("sentiment")),
    ai: AIService = Depends(get_ai_service),
):
    try:
        return AiSentimentResponse(sentiment=await ai.analyze_sentiment(body.content))
    except AnalysisError as e:
        logger.warning("AI sentiment failed for user %s: %s", user.id, e)
        raise _bad_gateway() from e


@router.post("/tags", response_model=AiTagsResponse)
async def ai_tags(
    body: AiContentRequest,
    user: User = Depends(ai_quota("tags")),
    ai: AIService = Depends(get_ai_service),
):
    try:
        return AiTagsResponse(tags=await ai.generate_tags(body.content))
    except AnalysisError as e:
        logger.warning("AI tags failed for user %s: %s", user.id, e)
        raise _bad_gateway() from e


@router.post("/summary", response_model=AiSummaryResponse)
async def ai_summary(
    body: AiContentRequest,
    user: User = Depends(ai_quota("summary")),
    ai: AIService = Depends(get_ai_service),
):
    try:
        return AiSummaryResponse(summary=await ai.generate_summary(body.content))
    except AnalysisError as e:
        logger.warning("AI summary failed for user %s: %s", user.id, e)
        raise _bad_gateway() from e


# ---------- Writing assist ----------


@router.post("/writing-assist", response_model=WritingAssistResponse)
async def ai_writing_assist(
    body: WritingAssistRequest,
    ai: AIService = Depends(_require_provider),
    user: User = Depends(ai_quota("writing_assist")),
):
    """Suggestions to improve or continue a diary entry. 503 (before the quota is charged) without a provider."""
    try:
        suggestions = await ai.assist_writing(body.prompt, body.context, body.max_tokens)
    except AnalysisError as e:
        logger.warning("AI writing assist failed for user %s: %s", user.id, e)
        raise _bad_gateway() from e
    return WritingAssistResponse(suggestions=suggestions)
