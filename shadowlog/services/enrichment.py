"""
Background enrichment of diary entries: sentiment, tags and summary computed concurrently,
each through the AI cache. A failure in one kind never cancels the others.
After all three settle, only the successful fields are written to the entry in one update;
failed fields keep their previous value. Errors are logged with the entry id, never raised.

submit() schedules enrich() as a tracked asyncio task so callers (and tests) can await completion.
"""
import asyncio
import logging
from dataclasses import dataclass, field

from shadowlog.database import Database
from shadowlog.models.ai_cache import AnalysisKind
from shadowlog.repositories.entry_repository import EntryRepository
from shadowlog.services.ai_service import AIService

logger = logging.getLogger(__name__)

# AnalysisKind -> update_analysis keyword
_FIELDS = {
    AnalysisKind.SENTIMENT: "sentiment",
    AnalysisKind.TAGS: "tags",
    AnalysisKind.SUMMARY: "summary",
}


@dataclass
class EnrichmentOutcome:
    entry_id: str
    persisted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    entry_missing: bool = False


class EnrichmentOrchestrator:
    def __init__(self, ai_service: AIService, database: Database, repository: EntryRepository | None = None):
        self._ai = ai_service
        self._db = database
        self._repo = repository or EntryRepository()
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, entry_id: str, content: str) -> asyncio.Task:
        """Schedule enrich() on the running loop. The returned task is the completion signal."""
        task = asyncio.get_running_loop().create_task(self.enrich(entry_id, content), name=f"enrich:{entry_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight enrichment (tests, shutdown)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def enrich(self, entry_id: str, content: str) -> EnrichmentOutcome:
        kinds = list(_FIELDS)
        results = await asyncio.gather(
            self._ai.analyze_sentiment(content),
            self._ai.generate_tags(content),
            self._ai.generate_summary(content),
            return_exceptions=True,
        )

        outcome = EnrichmentOutcome(entry_id=entry_id)
        values = {}
        for kind, result in zip(kinds, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning("AI %s failed for entry %s: %s", kind.value, entry_id, result, exc_info=False)
                outcome.failed.append(kind.value)
                continue
            values[_FIELDS[kind]] = result

        if not values:
            logger.error("AI analysis failed for entry %s: no field succeeded", entry_id)
            return outcome

        loop = asyncio.get_running_loop()
        try:
            found = await loop.run_in_executor(None, self._persist, entry_id, values)
        except Exception:
            logger.exception("Saving AI analysis failed for entry %s", entry_id)
            outcome.failed.extend(k.value for k in kinds if _FIELDS[k] in values)
            return outcome

        if not found:
            # Entry deleted while the analysis was running
            logger.info("Entry %s no longer exists; AI analysis discarded", entry_id)
            outcome.entry_missing = True
            return outcome

        outcome.persisted = [k.value for k in kinds if _FIELDS[k] in values]
        if outcome.failed:
            logger.warning("AI analysis partially completed for entry %s (failed: %s)", entry_id, ", ".join(outcome.failed))
        else:
            logger.info("AI analysis completed for entry %s", entry_id)
        return outcome

    def _persist(self, entry_id: str, values: dict) -> bool:
        db = self._db.session()
        try:
            return self._repo.update_analysis(db, entry_id, **values)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
