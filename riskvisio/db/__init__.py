"""Database package."""

from riskvisio.db.session import (
    close_db,
    get_async_session,
    get_session_dependency,
    get_session_factory,
    init_db,
)

__all__ = [
    "close_db",
    "get_async_session",
    "get_session_dependency",
    "get_session_factory",
    "init_db",
]
