"""
Database session management with connection pooling.

The engine and session factory are built once in the application lifespan
and stored on app.state; routes receive a per-request session through the
get_db_session dependency.

Usage:
    from clerk_mirror.database.session import get_db_session

    @router.get("/items")
    async def get_items(db: Session = Depends(get_db_session)):
        return db.query(Item).all()
"""

import logging
from typing import Generator, Optional

from fastapi import HTTPException, Request, status
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool

from clerk_mirror.config.settings import Settings, normalize_database_url

logger = logging.getLogger(__name__)


def build_engine(settings: Settings) -> Engine:
    """
    Create the database engine for the configured URL.

    Uses connection pooling with sensible defaults for production:
    - pool_size / max_overflow from settings (5 / 10)
    - pool_pre_ping: Verify connections before use
    - pool_recycle: Recycle connections after 30 minutes

    SQLite URLs (local development) get a single shared connection instead.

    Raises:
        ValueError: If DATABASE_URL is not configured
    """
    database_url = normalize_database_url(settings.database_url)
    if not database_url:
        raise ValueError("DATABASE_URL environment variable is not set")

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            database_url,
            poolclass=QueuePool,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,  # Verify connection health
            pool_recycle=1800,   # Recycle connections after 30 minutes
        )
    logger.info("Database engine created", extra={"dialect": engine.dialect.name})
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory bound to an engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Creates a new session for each request and ensures proper cleanup.
    Raises HTTP 503 if the database is not configured.
    """
    session_factory: Optional[sessionmaker] = getattr(
        request.app.state, "session_factory", None
    )
    if session_factory is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured",
        )

    session = session_factory()
    try:
        yield session
    finally:
        session.close()
