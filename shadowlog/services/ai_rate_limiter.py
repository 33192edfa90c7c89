"""
Daily limit for the direct /api/ai endpoints, counted per user per calendar day (UTC).
Background enrichment of entries is not counted.
"""
from datetime import datetime, timezone
from sqlalchemy import func
from sqlalchemy.orm import Session

from shadowlog.models.ai_usage_log import AiUsageLog


def _start_of_today_utc() -> datetime:
    return datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)


def count_ai_today(db: Session, user_id: str) -> int:
    today = _start_of_today_utc()
    return db.query(func.count(AiUsageLog.id)).filter(
        AiUsageLog.user_id == user_id,
        AiUsageLog.created_at >= today,
    ).scalar() or 0


def check_ai_limit(db: Session, user_id: str, limit: int) -> tuple[bool, str]:
    """
    Returns (allowed, error_message).
    If allowed, error_message is empty.
    """
    if count_ai_today(db, user_id) >= limit:
        return False, f"Daily limit reached ({limit} AI requests per day). Try again tomorrow."
    return True, ""


def log_usage(db: Session, user_id: str, feature: str) -> None:
    db.add(AiUsageLog(user_id=user_id, feature=feature))
    db.commit()
