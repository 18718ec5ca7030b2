"""Database engine, session factory, and initialization.

The engine is created on first use so that importing the parser never
touches the data directory; tests and scripts point it elsewhere with
configure_database().
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from analytics_ingest.config import settings
from analytics_ingest.models import Base

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def _enable_sqlite_pragmas(dbapi_conn, connection_record):
    """WAL journal and enforced foreign keys (dataset deletes cascade)."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str | None = None) -> Engine:
    url = database_url or settings.database_url
    engine = create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    event.listen(engine, "connect", _enable_sqlite_pragmas)
    return engine


def configure_database(engine: Engine | None = None) -> sessionmaker:
    """Install ``engine`` (default: one built from settings) as the active database."""
    global _engine, _session_factory
    _engine = engine or create_db_engine()
    _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _session_factory


def get_engine() -> Engine:
    if _engine is None:
        configure_database()
    return _engine


def get_session_factory() -> sessionmaker:
    if _session_factory is None:
        configure_database()
    return _session_factory


def init_db() -> None:
    """Create the data directory (for file-backed SQLite) and all tables."""
    engine = get_engine()
    if engine.url.get_backend_name() == "sqlite" and engine.url.database not in (None, "", ":memory:"):
        Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=engine)
    logger.info("Database initialized at %s", engine.url)


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a database session."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Transactional session for scripts: commit on success, roll back on error."""
    db = get_session_factory()()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
