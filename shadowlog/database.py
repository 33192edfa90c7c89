import json
import logging

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def _json_serializer(value) -> str:
    # Keep non-ASCII tags readable in JSON columns so LIKE-based tag search matches them
    return json.dumps(value, ensure_ascii=False)


class Database:
    """Owns the engine and session factory. Created and disposed by the app lifespan."""

    def __init__(self, url: str, echo: bool = False):
        connect_args = {}
        engine_kwargs = {}
        # SQLite needs check_same_thread=False for FastAPI
        if url.startswith("sqlite"):
            connect_args = {"check_same_thread": False}
            if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
                engine_kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(
            url,
            connect_args=connect_args,
            echo=echo,
            json_serializer=_json_serializer,
            **engine_kwargs,
        )
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def create_all(self) -> None:
        """Create missing tables (dev/test). Production schema comes from Alembic."""
        from shadowlog import models  # noqa: F401 - register models on Base

        Base.metadata.create_all(bind=self.engine)

    def health_check(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error("Database health check failed: %s", e)
            return False

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request):
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
