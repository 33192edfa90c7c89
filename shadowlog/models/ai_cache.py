"""Durable tier of the AI result cache: one row per (content, kind) key, expired rows removed by the sweeper."""
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from shadowlog.database import Base


class AnalysisKind(str, enum.Enum):
    SENTIMENT = "sentiment"
    TAGS = "tags"
    SUMMARY = "summary"


class AiCache(Base):
    __tablename__ = "ai_cache"

    key = Column(String(64), primary_key=True)  # sha256 hex of "kind:content"
    kind = Column(String(32), nullable=False, index=True)
    result = Column(JSON, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)  # naive UTC
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
