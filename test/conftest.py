from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator, Iterable

import httpx
import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel.pool import StaticPool

TEST_ROOT = Path(__file__).resolve().parent

# Load test/.env first, then fallback to test/.env.example for defaults
load_dotenv(TEST_ROOT / ".env", override=False)
load_dotenv(TEST_ROOT / ".env.example", override=False)

# Settings are read on import, so the test environment is set before any sitedeploy import
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["ENABLE_FILE_LOGGING"] = "false"
os.environ.setdefault("APP_ENCRYPT_KEY", "unit-test-encrypt-key")
os.environ.setdefault("SITE_STORAGE_ROOT", tempfile.mkdtemp(prefix="sitedeploy-storage-"))

from sitedeploy.build.parameters import ParameterStore  # noqa: E402
from sitedeploy.build.storage import SiteStorage  # noqa: E402
from sitedeploy.core.database.entities.sites import Site  # noqa: E402
from sitedeploy.core.database.repositories import build_sql_repos_from_session  # noqa: E402
from sitedeploy.core.database.utils import create_all, create_sessionmaker  # noqa: E402


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://0.0.0.0",
        "/",  # Allow relative paths (used by ASGI transport)
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with every table created; one per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator:
    async with session_factory() as session:
        yield session


@pytest.fixture
def repos(session):
    return build_sql_repos_from_session(session=session)


@pytest.fixture
def storage(tmp_path: Path) -> SiteStorage:
    return SiteStorage(tmp_path / "storage")


@pytest.fixture
def parameters(session_factory) -> ParameterStore:
    return ParameterStore(session_factory)


@pytest.fixture
def make_site(repos, tmp_path: Path):
    """Factory inserting a site whose checkout folder exists under ``tmp_path``."""

    async def _make_site(site_name: str = "shop", **overrides) -> Site:
        source = tmp_path / "www" / site_name
        source.mkdir(parents=True, exist_ok=True)
        values = dict(
            site_name=site_name,
            path_source_code=str(source),
            sh_content_dir=f"{site_name}/sh/{site_name}_build.sh",
            path_log=f"{site_name}/log/{site_name}_first.log",
        )
        values.update(overrides)
        return await repos.sites.create(Site(**values))

    return _make_site


class RecordingQueue:
    """Job queue stand-in that records dispatched jobs without running them."""

    def __init__(self) -> None:
        self.jobs: list = []

    async def dispatch(self, job) -> None:
        self.jobs.append(job)

    def start(self) -> None:
        return None

    async def stop(self) -> None:
        return None


@pytest.fixture
def recording_queue() -> RecordingQueue:
    return RecordingQueue()
