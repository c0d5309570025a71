"""
Persistence layer: declarative models, connection settings and async sessions.

Importing the package registers every model on Base.metadata, which Alembic
and the test suite rely on.
"""

from .base import Base
from .config import DatabaseSettings, get_database_settings
from .session import dispose_engine, get_async_session, get_session_maker, session_scope
from . import models as models  # noqa: F401

__all__ = [
    "Base",
    "DatabaseSettings",
    "get_database_settings",
    "get_async_session",
    "get_session_maker",
    "session_scope",
    "dispose_engine",
    "models",
]
