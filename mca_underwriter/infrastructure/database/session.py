"""Database engine and session factory"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from mca_underwriter.config import settings


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the configured store.

    SQLite (local runs and tests) gets a thread-shareable connection; server
    databases get a bounded pool recycled hourly.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; the handler owns commit/rollback"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
