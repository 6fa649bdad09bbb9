"""
Centralized database layer for sitedeploy.

This package provides a unified location for all database entities and repositories,
organized by table.

Structure:
- entities/: Database entity models, one module per table
- repositories/: Data access layer, one module per table
- session.py: Global engine and session factory management
- utils.py: Database utility functions (engine, session, create_all)
"""

from .base import Base, UTCDateTime, utc_now
from .session import (
    async_session_maker,
    engine,
    get_session,
    init_db,
)
from .utils import (
    create_all,
    create_engine,
    create_sessionmaker,
)

__all__ = [
    "Base",
    "async_session_maker",
    "create_all",
    "create_engine",
    "create_sessionmaker",
    "engine",
    "get_session",
    "init_db",
    "UTCDateTime",
    "utc_now",
]
