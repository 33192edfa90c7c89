from datetime import datetime

from pydantic import BaseModel, Field

from shadowlog.schemas.ai import SentimentResult


class EntryCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=50000)


class EntryUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1, max_length=50000)


class EntryResponse(BaseModel):
    id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime
    ai_sentiment: SentimentResult | None = None
    ai_tags: list[str] | None = None
    ai_summary: str | None = None

    class Config:
        from_attributes = True


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class EntryListResponse(BaseModel):
    entries: list[EntryResponse]
    pagination: PaginationOut


class MessageResponse(BaseModel):
    message: str
