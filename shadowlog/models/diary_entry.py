import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from shadowlog.database import Base


class DiaryEntry(Base):
    __tablename__ = "diary_entries"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Filled by background enrichment; each is independently nullable
    ai_sentiment = Column(JSON, nullable=True)  # {score, label, confidence, emotions}
    ai_tags = Column(JSON, nullable=True)  # list[str]
    ai_summary = Column(Text, nullable=True)

    user = relationship("User", back_populates="entries")

    __table_args__ = (Index("ix_diary_entries_user_created", "user_id", "created_at"),)
