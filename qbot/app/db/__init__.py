"""Database package: models, async session management and CRUD helpers."""

from qbot.app.db.async_session import (
    close_async_engine,
    get_async_engine,
    get_async_session,
    get_async_session_maker,
    get_db,
)
from qbot.app.db.base import Base
from qbot.app.db.dependencies import SessionDep

__all__ = [
    "Base",
    "SessionDep",
    "close_async_engine",
    "get_async_engine",
    "get_async_session",
    "get_async_session_maker",
    "get_db",
]
