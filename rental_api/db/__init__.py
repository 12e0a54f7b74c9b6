"""Database layer: declarative base, connection settings, engine and sessions.

Importing the package registers every model on ``Base.metadata``.
"""

from . import models as models  # noqa: F401
from .base import Base
from .config import Settings, get_settings
from .session import create_session_maker, get_async_session, get_engine, get_session_maker

__all__ = [
    "Base",
    "Settings",
    "create_session_maker",
    "get_async_session",
    "get_engine",
    "get_session_maker",
    "get_settings",
    "models",
]
