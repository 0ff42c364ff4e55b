"""Database session management with connection pooling"""

from typing import Iterator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, Session
from cheque_clearance.config import settings


def make_engine(database_url: str) -> Engine:
    """
    Build the engine for a database URL.

    PostgreSQL gets a bounded pool (20 connections, recycled hourly). SQLite,
    used for local runs and tests, is shared across the threads FastAPI
    serves sync routes from, so it skips pool sizing and the thread check.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """One session per request; the ledger commits or rolls back inside it"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
