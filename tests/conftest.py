"""
Shared pytest fixtures for ShadowLog tests.

Provides an in-memory SQLite database, an in-process async Redis stand-in,
a controllable clock and stub completion providers so no test touches the network.
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio

from shadowlog.config import Settings
from shadowlog.database import Database
from shadowlog.main import create_app
from shadowlog.services.ai_cache import AnalysisCache
from shadowlog.services.ai_service import (
    AIService,
    SENTIMENT_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    TAGS_SYSTEM_PROMPT,
    WRITING_ASSIST_SYSTEM_PROMPT,
)


class FakeClock:
    """Aware-UTC clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeRedis:
    """
    Minimal async Redis for the cache: get / setex / ping / aclose.
    TTLs are honoured against the given clock. Set `down = True` to simulate connection refused.
    """

    def __init__(self, clock: FakeClock | None = None):
        self._clock = clock or FakeClock()
        self.store: dict[str, tuple[str, datetime]] = {}
        self.down = False
        self.get_calls = 0
        self.set_calls = 0

    def _check(self):
        if self.down:
            raise ConnectionError("Connection refused")

    async def get(self, key):
        self.get_calls += 1
        self._check()
        item = self.store.get(key)
        if item is None:
            return None
        value, expires = item
        if self._clock() >= expires:
            del self.store[key]
            return None
        return value

    async def setex(self, key, ttl, value):
        self.set_calls += 1
        self._check()
        self.store[key] = (value, self._clock() + timedelta(seconds=ttl))
        return True

    async def ping(self):
        self._check()
        return True

    async def aclose(self):
        pass


KIND_BY_PROMPT = {
    SENTIMENT_SYSTEM_PROMPT: "sentiment",
    TAGS_SYSTEM_PROMPT: "tags",
    SUMMARY_SYSTEM_PROMPT: "summary",
    WRITING_ASSIST_SYSTEM_PROMPT: "writing_assist",
}

DEFAULT_RESPONSES = {
    "sentiment": '{"score": 0.8, "label": "positive", "confidence": 0.9, "emotions": ["joy", "calm"]}',
    "tags": '["park", "happy"]',
    "summary": "A happy day spent at the park.",
    "writing_assist": '["Describe the weather.", "Who was with you?"]',
}


class StubProvider:
    """
    Completion provider returning canned text per analysis kind.
    A response that is an Exception instance is raised instead.
    """

    def __init__(self, responses: dict | None = None):
        self.responses = {**DEFAULT_RESPONSES, **(responses or {})}
        self.calls: list[tuple[str, str]] = []

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)

    async def complete(self, system_prompt, user_content, temperature, max_tokens):
        kind = KIND_BY_PROMPT[system_prompt]
        self.calls.append((kind, user_content))
        response = self.responses[kind]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis(clock):
    return FakeRedis(clock)


@pytest.fixture
def database():
    db = Database("sqlite://")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def cache(database, fake_redis, clock):
    return AnalysisCache(database, fake_redis, repopulate_ttl=3600, clock=clock)


@pytest.fixture
def provider():
    return StubProvider()


@pytest.fixture
def ai_service(provider, cache):
    return AIService(provider, cache, cache_ttl=3600)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'shadowlog-test.db'}",
        redis_url="",
        gemini_api_key="",
        vertex_project_id="",
        cache_sweep_interval_seconds=3600,
        ai_daily_limit=5,
    )


@pytest_asyncio.fixture
async def app_client(settings, provider, fake_redis):
    """(app, client) with the lifespan running, so app.state services exist."""

    async def redis_factory(url):
        return fake_redis

    app = create_app(
        settings,
        provider_factory=lambda s: provider,
        redis_factory=redis_factory,
        create_tables=True,
    )
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield app, client


async def _register(client, email="alice@example.com", password="correct-horse", name="Alice") -> dict:
    res = await client.post("/api/auth/register", json={"email": email, "password": password, "name": name})
    assert res.status_code == 201, res.text
    return {"Authorization": f"Bearer {res.json()['access_token']}"}


@pytest.fixture
def register():
    """Register a user through the API and return bearer auth headers."""
    return _register
