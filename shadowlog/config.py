from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./shadowlog.db"

    # JWT
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:3000"

    # Gemini: either an API key, or a Vertex AI project (credentials file or ADC).
    # Both empty = AI disabled, analysis returns neutral/empty defaults.
    gemini_api_key: str = ""
    vertex_project_id: str = ""
    vertex_location: str = "us-central1"
    vertex_credentials_path: str = ""
    gemini_model: str = "gemini-2.0-flash"
    ai_request_timeout_seconds: int = 30

    # Redis (optional volatile tier for AI cache; empty = DB cache only)
    redis_url: str = ""  # e.g. redis://localhost:6379/0

    # AI result cache
    ai_cache_ttl_seconds: int = 3600
    ai_cache_repopulate_ttl_seconds: int = 3600
    cache_sweep_interval_seconds: int = 3600

    # Direct /api/ai calls per user per UTC day
    ai_daily_limit: int = 100

    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
