import time

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shadowlog.auth import get_current_user
from shadowlog.database import get_db
from shadowlog.models.user import User
from shadowlog.repositories.entry_repository import EntryRepository
from shadowlog.schemas.entry import EntryResponse
from shadowlog.schemas.search import QuickSearchResponse, QuickSuggestion, SearchRequest, SearchResponse

router = APIRouter(prefix="/api/search", tags=["search"])

repo = EntryRepository()


@router.post("", response_model=SearchResponse)
def search(
    body: SearchRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Search title, content, AI summary and tags, with optional date/sentiment/tag filters."""
    started = time.perf_counter()
    filters = body.filters
    date_range = filters.date_range if filters else None
    rows, total = repo.search_entries(
        db,
        user.id,
        body.query,
        start_date=date_range.start if date_range else None,
        end_date=date_range.end if date_range else None,
        sentiment=filters.sentiment if filters else None,
        tags=filters.tags if filters else None,
        limit=body.limit,
    )
    return SearchResponse(
        results=[EntryResponse.model_validate(r) for r in rows],
        total_results=total,
        search_time_ms=int((time.perf_counter() - started) * 1000),
    )


@router.get("/quick", response_model=QuickSearchResponse)
def quick_search(
    q: str = Query(..., min_length=1, max_length=200),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Autocomplete: up to 5 entries whose title or tags match."""
    rows = repo.quick_search(db, user.id, q)
    return QuickSearchResponse(
        suggestions=[
            QuickSuggestion(id=r.id, title=r.title, created_at=r.created_at, tags=r.ai_tags)
            for r in rows
        ]
    )
