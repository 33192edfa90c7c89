"""Tests for background enrichment: concurrency, partial failure, field preservation, task tracking."""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from shadowlog.models.diary_entry import DiaryEntry
from shadowlog.models.user import User
from shadowlog.repositories.entry_repository import update_analysis
from shadowlog.services.ai_service import AIService
from shadowlog.services.enrichment import EnrichmentOrchestrator

from conftest import StubProvider

PARK = "Had a great day at the park"


@pytest.fixture
def entry_id(database):
    db = database.session()
    try:
        user = User(email="bob@example.com", password="x")
        db.add(user)
        db.commit()
        entry = DiaryEntry(user_id=user.id, title="Park", content=PARK)
        db.add(entry)
        db.commit()
        return entry.id
    finally:
        db.close()


def _load(database, entry_id):
    db = database.session()
    try:
        return db.query(DiaryEntry).filter(DiaryEntry.id == entry_id).first()
    finally:
        db.close()


def _orchestrator(database, cache, provider):
    return EnrichmentOrchestrator(AIService(provider, cache), database)


class TestEnrich:

    @pytest.mark.asyncio
    async def test_all_fields_persisted(self, database, cache, provider, entry_id):
        outcome = await _orchestrator(database, cache, provider).enrich(entry_id, PARK)

        assert sorted(outcome.persisted) == ["sentiment", "summary", "tags"]
        assert outcome.failed == []
        entry = _load(database, entry_id)
        assert entry.ai_sentiment["label"] == "positive"
        assert entry.ai_tags == ["park", "happy"]
        assert entry.ai_summary == "A happy day spent at the park."

    @pytest.mark.asyncio
    async def test_tags_failure_leaves_tags_absent(self, database, cache, entry_id):
        provider = StubProvider({"tags": RuntimeError("rate limited")})
        outcome = await _orchestrator(database, cache, provider).enrich(entry_id, PARK)

        assert outcome.failed == ["tags"]
        entry = _load(database, entry_id)
        assert entry.ai_sentiment is not None
        assert entry.ai_summary == "A happy day spent at the park."
        assert entry.ai_tags is None

    @pytest.mark.asyncio
    async def test_malformed_response_treated_as_failure(self, database, cache, entry_id):
        provider = StubProvider({"sentiment": "I think it's positive!"})
        outcome = await _orchestrator(database, cache, provider).enrich(entry_id, PARK)

        assert outcome.failed == ["sentiment"]
        entry = _load(database, entry_id)
        assert entry.ai_sentiment is None
        assert entry.ai_tags == ["park", "happy"]

    @pytest.mark.asyncio
    async def test_failed_fields_keep_previous_values(self, database, cache, entry_id):
        db = database.session()
        try:
            update_analysis(db, entry_id, tags=["old"], summary="old summary")
        finally:
            db.close()

        provider = StubProvider({"tags": RuntimeError("boom"), "summary": RuntimeError("boom")})
        await _orchestrator(database, cache, provider).enrich(entry_id, "New content")

        entry = _load(database, entry_id)
        assert entry.ai_tags == ["old"]
        assert entry.ai_summary == "old summary"
        assert entry.ai_sentiment["label"] == "positive"

    @pytest.mark.asyncio
    async def test_everything_fails_without_raising(self, database, cache, entry_id):
        err = RuntimeError("down")
        provider = StubProvider({"sentiment": err, "tags": err, "summary": err})
        outcome = await _orchestrator(database, cache, provider).enrich(entry_id, PARK)

        assert outcome.persisted == []
        assert sorted(outcome.failed) == ["sentiment", "summary", "tags"]
        entry = _load(database, entry_id)
        assert (entry.ai_sentiment, entry.ai_tags, entry.ai_summary) == (None, None, None)

    @pytest.mark.asyncio
    async def test_unconfigured_provider_writes_defaults(self, database, cache, entry_id):
        outcome = await EnrichmentOrchestrator(AIService(None, cache), database).enrich(entry_id, PARK)

        assert outcome.failed == []
        entry = _load(database, entry_id)
        assert entry.ai_sentiment == {"score": 0.0, "label": "neutral", "confidence": 0.0, "emotions": []}
        assert entry.ai_tags == []
        assert entry.ai_summary == ""

    @pytest.mark.asyncio
    async def test_deleted_entry(self, database, cache, provider):
        outcome = await _orchestrator(database, cache, provider).enrich("no-such-entry", PARK)
        assert outcome.entry_missing is True
        assert outcome.persisted == []

    @pytest.mark.asyncio
    async def test_calls_run_concurrently(self, database, cache, entry_id):
        started = []
        release = asyncio.Event()

        class SlowProvider(StubProvider):
            async def complete(self, system_prompt, user_content, temperature, max_tokens):
                started.append(system_prompt)
                if len(started) == 3:
                    release.set()
                await asyncio.wait_for(release.wait(), timeout=2)
                return await super().complete(system_prompt, user_content, temperature, max_tokens)

        outcome = await _orchestrator(database, cache, SlowProvider()).enrich(entry_id, PARK)
        assert len(outcome.persisted) == 3


class TestSubmit:

    @pytest.mark.asyncio
    async def test_submit_returns_awaitable_task(self, database, cache, provider, entry_id):
        orchestrator = _orchestrator(database, cache, provider)
        task = orchestrator.submit(entry_id, PARK)
        assert orchestrator.pending == 1

        outcome = await task
        assert outcome.entry_id == entry_id
        assert _load(database, entry_id).ai_tags == ["park", "happy"]

    @pytest.mark.asyncio
    async def test_drain_waits_for_all(self, database, cache, provider, entry_id):
        orchestrator = _orchestrator(database, cache, provider)
        orchestrator.submit(entry_id, PARK)
        orchestrator.submit(entry_id, PARK + " again")

        await orchestrator.drain()
        assert orchestrator.pending == 0
        assert _load(database, entry_id).ai_summary is not None


class BrokenRepository:
    def update_analysis(self, db, entry_id, **fields):
        raise OperationalError("UPDATE diary_entries", {}, Exception("disk I/O error"))


class TestPersistFailure:

    @pytest.mark.asyncio
    async def test_save_error_reported_not_raised(self, database, cache, provider, entry_id, caplog):
        orchestrator = EnrichmentOrchestrator(AIService(provider, cache), database, repository=BrokenRepository())

        outcome = await orchestrator.enrich(entry_id, PARK)

        assert outcome.persisted == []
        assert sorted(outcome.failed) == ["sentiment", "summary", "tags"]
        assert outcome.entry_missing is False
        assert f"Saving AI analysis failed for entry {entry_id}" in caplog.text
        entry = _load(database, entry_id)
        assert (entry.ai_sentiment, entry.ai_tags, entry.ai_summary) == (None, None, None)

    @pytest.mark.asyncio
    async def test_submitted_task_completes_after_save_error(self, database, cache, provider, entry_id):
        orchestrator = EnrichmentOrchestrator(AIService(provider, cache), database, repository=BrokenRepository())
        outcome = await orchestrator.submit(entry_id, PARK)
        assert len(outcome.failed) == 3
