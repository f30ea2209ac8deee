"""Database engine and session management."""

from clerk_mirror.database.session import (
    build_engine,
    build_session_factory,
    get_db_session,
)

__all__ = ["build_engine", "build_session_factory", "get_db_session"]
