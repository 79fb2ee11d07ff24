"""
Database session management with SQLAlchemy.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from typing import Generator
from contextlib import contextmanager

from proposal_engine.core.config import settings
from proposal_engine.core.logging import get_logger

logger = get_logger(__name__)


def _engine_kwargs(url: str) -> dict:
    # SQLite connections are shared across FastAPI's worker threads
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database session."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """
    Create any missing tables.

    The quote store is an external collaborator; this only gives the
    service a working schema for local runs and SQLite deployments.
    """
    from sqlalchemy import inspect

    # Import models to register them with the metadata
    from proposal_engine.db import models  # noqa

    existing_tables = set(inspect(engine).get_table_names())
    missing = [t for t in Base.metadata.tables if t not in existing_tables]
    if missing:
        logger.info(f"Creating missing tables: {', '.join(sorted(missing))}")
        Base.metadata.create_all(bind=engine)
    else:
        logger.info(f"Database schema verified: {len(existing_tables)} tables found")
