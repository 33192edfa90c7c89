from typing import Literal

from pydantic import BaseModel, Field, field_validator

from shadowlog.models.ai_cache import AnalysisKind


# ---- Analysis results ----

class SentimentResult(BaseModel):
    score: float = Field(0.0, ge=-1, le=1, description="-1 very negative .. 1 very positive")
    label: Literal["positive", "negative", "neutral", "mixed"] = "neutral"
    confidence: float = Field(0.0, ge=0, le=1)
    emotions: list[str] = Field(default_factory=list, description="Up to 5 emotion keywords")

    @field_validator("emotions")
    @classmethod
    def _max_five_emotions(cls, v: list[str]) -> list[str]:
        return [e.strip() for e in v if e and e.strip()][:5]


# ---- Analyze ----

class AiAnalyzeRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)
    features: list[AnalysisKind] = Field(..., min_length=1)


class AiAnalyzeResponse(BaseModel):
    sentiment: SentimentResult | None = None
    tags: list[str] | None = None
    summary: str | None = None


class AiContentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class AiSentimentResponse(BaseModel):
    sentiment: SentimentResult


class AiTagsResponse(BaseModel):
    tags: list[str]


class AiSummaryResponse(BaseModel):
    summary: str


# ---- Writing assist ----

class WritingAssistRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=1000)
    context: str | None = Field(None, max_length=5000)
    max_tokens: int = Field(500, ge=10, le=2000)


class WritingAssistResponse(BaseModel):
    suggestions: list[str]


class AiHealthResponse(BaseModel):
    redis: str
    provider: str
