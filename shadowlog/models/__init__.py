from shadowlog.models.user import User
from shadowlog.models.diary_entry import DiaryEntry
from shadowlog.models.ai_cache import AiCache, AnalysisKind
from shadowlog.models.ai_usage_log import AiUsageLog

__all__ = ["User", "DiaryEntry", "AiCache", "AnalysisKind", "AiUsageLog"]
