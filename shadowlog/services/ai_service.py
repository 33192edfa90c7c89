"""
Diary analysis on top of a completion provider: sentiment, tags, summary (cached) and writing assist (not cached).
Without a provider, sentiment/tags/summary return neutral/empty defaults so the rest of the app works without AI.
Provider errors and unparseable responses raise AnalysisError.
"""
import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Protocol

from pydantic import ValidationError

from shadowlog.core.exceptions import AnalysisError, ProviderNotConfiguredError
from shadowlog.models.ai_cache import AnalysisKind
from shadowlog.schemas.ai import SentimentResult
from shadowlog.services.ai_cache import AnalysisCache
from shadowlog.utils.cache_key import derive_cache_key

logger = logging.getLogger(__name__)

MAX_TAGS = 8


class CompletionProvider(Protocol):
    async def complete(self, system_prompt: str, user_content: str, temperature: float, max_tokens: int) -> str:
        ...


SENTIMENT_SYSTEM_PROMPT = """Analyze the sentiment of the following diary entry. Return only a JSON object with:
- score: number between -1 (very negative) and 1 (very positive)
- label: one of "positive", "negative", "neutral", "mixed"
- confidence: number between 0 and 1
- emotions: array of emotion keywords (max 5)

Be empathetic and understanding when analyzing personal diary content."""

TAGS_SYSTEM_PROMPT = """Generate relevant tags for this diary entry. Return only a JSON array of 3-8 tags.
Tags should be:
- Relevant to the content
- Concise (1-2 words)
- In the same language as the content
- Helpful for categorization and search

Example: ["work", "mood", "reflection", "growth"]"""

SUMMARY_SYSTEM_PROMPT = """Create a brief, empathetic summary of this diary entry in 1-2 sentences.
Focus on the main theme, emotions, or events mentioned.
Use the same language as the original content."""

WRITING_ASSIST_SYSTEM_PROMPT = """You are a helpful writing assistant for diary entries.
Provide thoughtful suggestions to help improve or continue the writing.
Be empathetic, supportive, and respectful of personal experiences.
Return suggestions only as a JSON array of strings."""


def default_sentiment() -> dict:
    return SentimentResult().model_dump()


def _strip_code_fence(text: str) -> str:
    """Gemini often wraps JSON in ```json ... ``` even when asked not to."""
    s = text.strip()
    if s.startswith("```"):
        s = s.split("\n", 1)[1] if "\n" in s else ""
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


def _parse_json(text: str, kind: str) -> Any:
    try:
        return json.loads(_strip_code_fence(text))
    except (json.JSONDecodeError, TypeError) as e:
        raise AnalysisError(kind, f"model returned non-JSON content: {text[:80]!r}") from e


def parse_sentiment(text: str) -> dict:
    data = _parse_json(text, AnalysisKind.SENTIMENT.value)
    if not isinstance(data, dict):
        raise AnalysisError(AnalysisKind.SENTIMENT.value, "expected a JSON object")
    try:
        return SentimentResult.model_validate(data).model_dump()
    except ValidationError as e:
        raise AnalysisError(AnalysisKind.SENTIMENT.value, f"invalid sentiment: {e.errors()[0]['msg']}") from e


def parse_tags(text: str) -> list[str]:
    data = _parse_json(text, AnalysisKind.TAGS.value)
    if not isinstance(data, list):
        raise AnalysisError(AnalysisKind.TAGS.value, "expected a JSON array")
    tags: list[str] = []
    for t in data:
        if not isinstance(t, str):
            raise AnalysisError(AnalysisKind.TAGS.value, "tags must be strings")
        t = t.strip()
        if t and t not in tags:
            tags.append(t)
    return tags[:MAX_TAGS]


def parse_suggestions(text: str) -> list[str]:
    data = _parse_json(text, "writing_assist")
    items = data if isinstance(data, list) else [data]
    return [str(s).strip() for s in items if str(s).strip()]


class AIService:
    """Sentiment, tags, summary via cache-then-provider. `provider` None means AI is disabled."""

    def __init__(
        self,
        provider: CompletionProvider | None,
        cache: AnalysisCache | None = None,
        *,
        cache_ttl: int = 3600,
    ):
        self._provider = provider
        self._cache = cache
        self._ttl = cache_ttl

    @property
    def enabled(self) -> bool:
        return self._provider is not None

    async def _cached(self, kind: AnalysisKind, content: str, compute: Callable[[], Awaitable[Any]]) -> Any:
        key = derive_cache_key(content, kind.value)
        if self._cache:
            cached = await self._cache.get(key, kind.value)
            if cached is not None:
                return cached
        result = await compute()
        if self._cache:
            await self._cache.put(key, kind.value, result, self._ttl)
        return result

    async def _complete(self, kind: str, system_prompt: str, content: str, temperature: float, max_tokens: int) -> str:
        try:
            return await self._provider.complete(system_prompt, content, temperature, max_tokens)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise AnalysisError(kind, f"provider call failed: {e}") from e

    async def analyze_sentiment(self, content: str) -> dict:
        if not self._provider:
            return default_sentiment()

        async def compute():
            text = await self._complete(AnalysisKind.SENTIMENT.value, SENTIMENT_SYSTEM_PROMPT, content, 0.3, 200)
            return parse_sentiment(text)

        return await self._cached(AnalysisKind.SENTIMENT, content, compute)

    async def generate_tags(self, content: str) -> list[str]:
        if not self._provider:
            return []

        async def compute():
            text = await self._complete(AnalysisKind.TAGS.value, TAGS_SYSTEM_PROMPT, content, 0.5, 100)
            return parse_tags(text)

        return await self._cached(AnalysisKind.TAGS, content, compute)

    async def generate_summary(self, content: str) -> str:
        if not self._provider:
            return ""

        async def compute():
            text = await self._complete(AnalysisKind.SUMMARY.value, SUMMARY_SYSTEM_PROMPT, content, 0.4, 150)
            return text.strip()

        return await self._cached(AnalysisKind.SUMMARY, content, compute)

    async def analyze(self, content: str, features: list[AnalysisKind]) -> dict:
        """Run the requested kinds concurrently. The first failure propagates."""
        calls = {
            AnalysisKind.SENTIMENT: self.analyze_sentiment,
            AnalysisKind.TAGS: self.generate_tags,
            AnalysisKind.SUMMARY: self.generate_summary,
        }
        kinds = list(dict.fromkeys(features))
        results = await asyncio.gather(*(calls[k](content) for k in kinds))
        return {k.value: r for k, r in zip(kinds, results)}

    async def assist_writing(self, prompt: str, context: str | None = None, max_tokens: int = 500) -> list[str]:
        if not self._provider:
            raise ProviderNotConfiguredError("AI writing assistance is not configured")
        user_message = f"Context: {context}\n\nPrompt: {prompt}" if context else prompt
        text = await self._complete("writing_assist", WRITING_ASSIST_SYSTEM_PROMPT, user_message, 0.7, max_tokens)
        return parse_suggestions(text)
