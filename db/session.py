# WORKFLOW: Database engine, sessions and connectivity checks.
# Used by: Every router (via get_db), bootstrap script, readiness probe
# Functions:
# 1. get_db() - Request-scoped session dependency for FastAPI endpoints
# 2. session_scope() - Commit/rollback context for scripts
# 3. init_db() - Create the billing tables
# 4. check_db_connection() - SELECT 1 against the configured database
#
# Session lifecycle:
# Request: get_db() -> Session -> Ledger/Resolver queries -> Close
# Script: session_scope() -> Work -> Commit (rollback on error) -> Close
# The engine is built on first use so importing the app never opens a connection.

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

_engine = None
_SessionLocal = None


def _engine_options(database_url: str) -> dict:
    """Dialect specific engine options."""
    if database_url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            options["poolclass"] = StaticPool
        return options
    # PostgreSQL: recycle dead connections, store timestamps in UTC
    return {
        "pool_pre_ping": True,
        "connect_args": {"options": "-c timezone=utc"},
    }


def get_engine():
    global _engine
    if _engine is None:
        _engine = create_engine(
            settings.database_url,
            echo=settings.debug,
            **_engine_options(settings.database_url)
        )
        logger.info(f"Database engine created for {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def get_session_factory():
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal


def get_db() -> Iterator[Session]:
    """
    FastAPI dependency yielding one session per request.

    Services commit their own writes; anything left uncommitted after an
    exception is rolled back here.
    """
    db = get_session_factory()()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts: commits on success, rolls back and re-raises on error."""
    db = get_session_factory()()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    from db.models import Base

    try:
        Base.metadata.create_all(bind=get_engine())
        logger.info(f"Billing tables ready: {', '.join(sorted(Base.metadata.tables))}")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


def check_db_connection() -> bool:
    """True when the database answers SELECT 1."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1")).scalar()
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
