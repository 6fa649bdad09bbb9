"""
Global database session and engine management.

This module manages the global AsyncEngine and async_sessionmaker instances
that are used throughout the application for database access.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator

from sqlmodel.ext.asyncio.session import AsyncSession

from sitedeploy.server.core.config import settings

from .utils import create_all, create_engine, create_sessionmaker

logger = logging.getLogger(__name__)

# Create global engine and session factory
engine = create_engine(settings.database_url)
async_session_maker = create_sessionmaker(engine)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency generator for database sessions.

    Yields:
        AsyncSession: An asynchronous SQLModel session.
    """
    async with async_session_maker() as session:
        yield session


async def init_db() -> None:
    """
    Initialize the database.

    Creates missing tables for SQLite development databases. For other
    backends the Alembic migration in ``alembic/versions`` owns the schema.
    """
    if engine.url.get_backend_name() == "sqlite":
        await create_all(engine)
        logger.info("Database tables ensured on %s", engine.url.render_as_string(hide_password=True))
    else:
        logger.info("Skipping create_all for %s; run Alembic migrations instead", engine.url.get_backend_name())
