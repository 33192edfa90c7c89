"""
Diary entries (owner-scoped CRUD).
Create, and update with changed content, submit background AI enrichment and return without waiting for it.
"""
import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from shadowlog.auth import get_current_user
from shadowlog.database import get_db
from shadowlog.dependencies import get_enrichment
from shadowlog.models.user import User
from shadowlog.repositories.entry_repository import EntryRepository
from shadowlog.schemas.entry import (
    EntryCreate,
    EntryListResponse,
    EntryResponse,
    EntryUpdate,
    MessageResponse,
    PaginationOut,
)
from shadowlog.services.enrichment import EnrichmentOrchestrator
from shadowlog.utils.pagination import MAX_PAGE_SIZE, pagination_meta

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/entries", tags=["entries"])

repo = EntryRepository()


def _get_owned_entry(db: Session, entry_id: str, user: User):
    entry = repo.get_entry_for_user(db, entry_id, user.id)
    if not entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Entry not found")
    return entry


@router.get("", response_model=EntryListResponse)
def list_entries(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = Query(None, max_length=200),
    sort_by: Literal["created_at", "updated_at", "title"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Paginated list of the user's entries. Page size is capped at 50."""
    limit = min(limit, MAX_PAGE_SIZE)
    rows, total = repo.list_entries(
        db,
        user.id,
        page=page,
        limit=limit,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        start_date=start_date,
        end_date=end_date,
    )
    return EntryListResponse(
        entries=[EntryResponse.model_validate(r) for r in rows],
        pagination=PaginationOut(**pagination_meta(page, limit, total)),
    )


@router.get("/{entry_id}", response_model=EntryResponse)
def get_entry(
    entry_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return _get_owned_entry(db, entry_id, user)


@router.post("", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
async def create_entry(
    body: EntryCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    enrichment: EnrichmentOrchestrator = Depends(get_enrichment),
):
    """Create an entry. AI sentiment/tags/summary are filled in later by background enrichment."""
    entry = await run_in_threadpool(repo.create_entry, db, user.id, body.title, body.content)
    response = EntryResponse.model_validate(entry)
    enrichment.submit(entry.id, body.content)
    return response


@router.put("/{entry_id}", response_model=EntryResponse)
async def update_entry(
    entry_id: str,
    body: EntryUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    enrichment: EnrichmentOrchestrator = Depends(get_enrichment),
):
    """Partial update. Enrichment runs again only when the content actually changed."""
    entry = await run_in_threadpool(_get_owned_entry, db, entry_id, user)
    content_changed = body.content is not None and body.content != entry.content
    entry = await run_in_threadpool(
        lambda: repo.update_entry(db, entry, title=body.title, content=body.content)
    )
    response = EntryResponse.model_validate(entry)
    if content_changed:
        enrichment.submit(entry.id, entry.content)
    return response


@router.delete("/{entry_id}", response_model=MessageResponse)
def delete_entry(
    entry_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    entry = _get_owned_entry(db, entry_id, user)
    repo.delete_entry(db, entry)
    return MessageResponse(message="Entry deleted successfully")
