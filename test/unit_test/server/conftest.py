from __future__ import annotations

from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from sitedeploy.core.database import get_session
from sitedeploy.server.main import app
from sitedeploy.server.services.deps import get_build_queue, get_parameter_store, get_site_storage


@pytest_asyncio.fixture
async def client(session_factory, parameters, storage, recording_queue) -> AsyncGenerator[AsyncClient, None]:
    """API client wired to the per-test database, storage and a recording queue."""

    async def _get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_parameter_store] = lambda: parameters
    app.dependency_overrides[get_site_storage] = lambda: storage
    app.dependency_overrides[get_build_queue] = lambda: recording_queue

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with AsyncClient(transport=transport, base_url="http://localhost") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
