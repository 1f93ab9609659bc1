"""SQLAlchemy engine and session factory.

When DATABASE_URL is configured, provides:
- an engine for the configured database (PostgreSQL via psycopg in prod)
- a session factory for request-scoped sessions
- a FastAPI lifespan hook for startup/shutdown

When DATABASE_URL is None (no database configured), the engine exports are
None and the app falls back to the in-memory registry.

The registry's operations are synchronous and run to completion within a
request, so the engine is synchronous too.  FastAPI runs the sync
endpoints in its thread pool.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import asynccontextmanager, contextmanager

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from kyc_registry.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


def build_session_factory(bind: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind, class_=Session, expire_on_commit=False)


# --- Engine and session factory (None when no DATABASE_URL) ---

if SETTINGS.database_url:
    engine: Engine | None = create_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,  # log SQL in dev only
        pool_pre_ping=True,
    )
    session_factory: sessionmaker[Session] | None = build_session_factory(engine)
else:
    engine = None
    session_factory = None


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Yield one session per request.

    Commits on success, rolls back on exception, so a rejected registry
    operation never leaves a partial write behind.
    """
    with factory() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


def database_ping() -> bool:
    if engine is None:
        return False
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True


@asynccontextmanager
async def lifespan_db():
    """Startup/shutdown hook for the database engine.

    Call from FastAPI's lifespan context manager.
    """
    if engine is None:
        logger.info("No DATABASE_URL configured: using in-memory registry")
        yield
        return

    logger.info("Database engine created: %s", engine.url)
    yield
    engine.dispose()
    logger.info("Database engine disposed")
