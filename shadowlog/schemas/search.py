from datetime import datetime

from pydantic import BaseModel, Field

from shadowlog.schemas.entry import EntryResponse


class DateRange(BaseModel):
    start: datetime
    end: datetime


class SearchFilters(BaseModel):
    date_range: DateRange | None = None
    sentiment: str | None = Field(None, description="positive | negative | neutral | mixed")
    tags: list[str] | None = None


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=200)
    filters: SearchFilters | None = None
    limit: int = Field(20, ge=1, le=50)


class SearchResponse(BaseModel):
    results: list[EntryResponse]
    total_results: int
    search_time_ms: int


class QuickSuggestion(BaseModel):
    id: str
    title: str
    created_at: datetime
    tags: list[str] | None = None


class QuickSearchResponse(BaseModel):
    suggestions: list[QuickSuggestion]
