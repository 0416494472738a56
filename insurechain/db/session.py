"""Database session management.

This module provides SQLAlchemy engine and session management:
- engine: The SQLAlchemy engine connected to the configured database
- SessionLocal: Session factory for creating database sessions
- get_db_session(): Context manager for non-request code
- create_db_engine(): Build an engine for an arbitrary URL (tests use
  ``sqlite://``)
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from insurechain.config import DATABASE_URL

log = logging.getLogger(__name__)


def create_db_engine(url: str) -> Engine:
    """Create an engine configured for the database type.

    SQLite uses a StaticPool (single shared connection) so in-memory
    databases survive across sessions; other databases get a regular
    connection pool.
    """
    if url.startswith("sqlite"):
        from sqlalchemy.pool import StaticPool

        engine_kwargs = {
            "echo": False,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    else:
        engine_kwargs = {
            "echo": False,
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
            "pool_recycle": 1800,
        }

    new_engine = create_engine(url, **engine_kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(new_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return new_engine


engine = create_db_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


@contextmanager
def get_db_session(factory: sessionmaker = None) -> Generator[Session, None, None]:
    """Context manager for database sessions.

    The session is committed on success and rolled back on exception.
    """
    db = (factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_database(bind: Engine = None) -> None:
    """Create all tables idempotently.

    For SQLite files, also ensures the database directory exists.
    """
    from insurechain.db.models import Base

    bind = bind or engine
    url = str(bind.url)
    log.info(f"Initializing database at {url.split('@')[-1] if '@' in url else url}")

    if url.startswith("sqlite:///"):
        db_path = url.replace("sqlite:///", "")
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    Base.metadata.create_all(bind=bind)
    log.info("Database tables created successfully")
