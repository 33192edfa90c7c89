"""
Diary entry persistence. DB is the sole durable home of an entry and its latest AI analysis.
All operations are sync (used from sync endpoints or run_in_executor from async).
Ownership: every read/write that takes a user_id is scoped to entries with entry.user_id == user_id.
"""
import json
from datetime import datetime
from typing import Any

from sqlalchemy import String, asc, cast, desc, or_
from sqlalchemy.orm import Session

from shadowlog.models.diary_entry import DiaryEntry
from shadowlog.utils.pagination import calculate_pagination


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

SORT_COLUMNS = {
    "created_at": DiaryEntry.created_at,
    "updated_at": DiaryEntry.updated_at,
    "title": DiaryEntry.title,
}


def _tag_match(tag: str):
    """Exact tag membership on the JSON array column, matched on its serialized form ("tag" with quotes)."""
    return cast(DiaryEntry.ai_tags, String).contains(json.dumps(tag, ensure_ascii=False), autoescape=True)


def _any_tag(tags: list[str]):
    return or_(*(_tag_match(t) for t in tags))


def create_entry(db: Session, user_id: str, title: str, content: str) -> DiaryEntry:
    entry = DiaryEntry(user_id=user_id, title=title, content=content)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_entry_for_user(db: Session, entry_id: str, user_id: str) -> DiaryEntry | None:
    return db.query(DiaryEntry).filter(DiaryEntry.id == entry_id, DiaryEntry.user_id == user_id).first()


def list_entries(
    db: Session,
    user_id: str,
    *,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> tuple[list[DiaryEntry], int]:
    """One page of the user's entries plus the total matching count."""
    q = db.query(DiaryEntry).filter(DiaryEntry.user_id == user_id)
    if search:
        q = q.filter(
            or_(
                DiaryEntry.title.icontains(search, autoescape=True),
                DiaryEntry.content.icontains(search, autoescape=True),
                _tag_match(search),
            )
        )
    if start_date:
        q = q.filter(DiaryEntry.created_at >= start_date)
    if end_date:
        q = q.filter(DiaryEntry.created_at <= end_date)

    total = q.count()
    column = SORT_COLUMNS.get(sort_by, DiaryEntry.created_at)
    order = asc(column) if sort_order == "asc" else desc(column)
    skip, take = calculate_pagination(page, limit)
    rows = q.order_by(order, desc(DiaryEntry.id)).offset(skip).limit(take).all()
    return rows, total


def update_entry(db: Session, entry: DiaryEntry, *, title: str | None = None, content: str | None = None) -> DiaryEntry:
    if title is not None:
        entry.title = title
    if content is not None:
        entry.content = content
    db.commit()
    db.refresh(entry)
    return entry


def delete_entry(db: Session, entry: DiaryEntry) -> None:
    db.delete(entry)
    db.commit()


def update_analysis(
    db: Session,
    entry_id: str,
    *,
    sentiment: dict | None = UNSET,
    tags: list[str] | None = UNSET,
    summary: str | None = UNSET,
) -> bool:
    """
    Set only the analysis fields that were passed, in a single UPDATE.
    Fields left UNSET keep their current value. Returns False if the entry no longer exists.
    """
    values = {}
    if sentiment is not UNSET:
        values[DiaryEntry.ai_sentiment] = sentiment
    if tags is not UNSET:
        values[DiaryEntry.ai_tags] = tags
    if summary is not UNSET:
        values[DiaryEntry.ai_summary] = summary
    if not values:
        return db.query(DiaryEntry.id).filter(DiaryEntry.id == entry_id).first() is not None
    updated = db.query(DiaryEntry).filter(DiaryEntry.id == entry_id).update(values, synchronize_session=False)
    db.commit()
    return updated > 0


def search_entries(
    db: Session,
    user_id: str,
    query: str,
    *,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    sentiment: str | None = None,
    tags: list[str] | None = None,
    limit: int = 20,
) -> tuple[list[DiaryEntry], int]:
    """Text match on title, content, summary or an exact tag, plus optional filters. Newest first."""
    q = db.query(DiaryEntry).filter(
        DiaryEntry.user_id == user_id,
        or_(
            DiaryEntry.title.icontains(query, autoescape=True),
            DiaryEntry.content.icontains(query, autoescape=True),
            DiaryEntry.ai_summary.icontains(query, autoescape=True),
            _tag_match(query),
        ),
    )
    if start_date:
        q = q.filter(DiaryEntry.created_at >= start_date)
    if end_date:
        q = q.filter(DiaryEntry.created_at <= end_date)
    if sentiment:
        q = q.filter(DiaryEntry.ai_sentiment["label"].as_string() == sentiment)
    if tags:
        q = q.filter(_any_tag(tags))
    total = q.count()
    rows = q.order_by(desc(DiaryEntry.created_at)).limit(limit).all()
    return rows, total


def quick_search(db: Session, user_id: str, q: str, limit: int = 5) -> list[DiaryEntry]:
    """Autocomplete: title substring or exact tag, newest first."""
    return (
        db.query(DiaryEntry)
        .filter(
            DiaryEntry.user_id == user_id,
            or_(DiaryEntry.title.icontains(q, autoescape=True), _tag_match(q)),
        )
        .order_by(desc(DiaryEntry.created_at))
        .limit(limit)
        .all()
    )


class EntryRepository:
    """Thin wrapper for dependency injection; delegates to module functions."""

    @staticmethod
    def create_entry(db: Session, user_id: str, title: str, content: str) -> DiaryEntry:
        return create_entry(db, user_id, title, content)

    @staticmethod
    def get_entry_for_user(db: Session, entry_id: str, user_id: str) -> DiaryEntry | None:
        return get_entry_for_user(db, entry_id, user_id)

    @staticmethod
    def list_entries(db: Session, user_id: str, **kwargs) -> tuple[list[DiaryEntry], int]:
        return list_entries(db, user_id, **kwargs)

    @staticmethod
    def update_entry(db: Session, entry: DiaryEntry, *, title: str | None = None, content: str | None = None) -> DiaryEntry:
        return update_entry(db, entry, title=title, content=content)

    @staticmethod
    def delete_entry(db: Session, entry: DiaryEntry) -> None:
        return delete_entry(db, entry)

    @staticmethod
    def update_analysis(db: Session, entry_id: str, **fields) -> bool:
        return update_analysis(db, entry_id, **fields)

    @staticmethod
    def search_entries(db: Session, user_id: str, query: str, **kwargs) -> tuple[list[DiaryEntry], int]:
        return search_entries(db, user_id, query, **kwargs)

    @staticmethod
    def quick_search(db: Session, user_id: str, q: str, limit: int = 5) -> list[DiaryEntry]:
        return quick_search(db, user_id, q, limit)
