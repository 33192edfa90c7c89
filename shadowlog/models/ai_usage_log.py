"""AI endpoint usage log for the per-user daily limit."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
from shadowlog.database import Base


class AiUsageLog(Base):
    __tablename__ = "ai_usage_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    feature = Column(String(32), nullable=False, index=True)  # "analyze" | "sentiment" | "tags" | "summary" | "writing_assist"
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
