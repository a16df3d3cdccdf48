"""
Database connection management for the Feed Rules Engine
"""
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from feed_rules.config import get_settings

from .models import Base

# Session factory, bound by configure()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)

_engine: Optional[Engine] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configure(database_url: Optional[str] = None) -> Engine:
    """Create the engine for ``database_url`` (default: DATABASE_URL) and bind sessions to it"""
    global _engine
    url = database_url or get_settings().database_url
    _engine = create_engine(url)
    if _engine.dialect.name == 'sqlite':
        # Cascades on rule_conditions / article_tags rely on FK enforcement
        event.listen(_engine, 'connect', _enable_sqlite_foreign_keys)
    SessionLocal.configure(bind=_engine)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        return configure()
    return _engine


def init_db() -> None:
    """Initialize the database, creating all tables"""
    Base.metadata.create_all(bind=get_engine())


def get_db_session() -> Session:
    """Get a new database session"""
    get_engine()
    return SessionLocal()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Session that commits on success and rolls back on error"""
    db = get_db_session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
