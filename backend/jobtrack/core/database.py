# jobtrack/core/database.py
from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from jobtrack.core.config import settings


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # Sync routes run in FastAPI's threadpool, so the sqlite handle crosses threads.
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request; routes own commit/rollback."""
    with SessionLocal() as db:
        yield db
