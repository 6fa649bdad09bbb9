"""
Runtime parameters with a cache-aside read path.

Parameters live in the ``parameters`` table and are read on every build, so
values are cached in memory per key and invalidated on writes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from sitedeploy.core.database.entities.parameters import Parameter
from sitedeploy.core.database.repositories.parameters import ParameterRepository
from sitedeploy.server.core.config import settings

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "1", "yes", "on")

# Well-known keys
PATH_PROJECT = "path_project"
DEV_EMAIL = "dev_email"
GIT_AUTO_PULL = "git_auto_pull"
NPM_INSTALL_ON_BUILD = "npm_install_on_build"
NPM_RUN_BUILD = "npm_run_build"
DEFAULT_PM2_PORT_START = "default_pm2_port_start"
APP_ENV_BUILD = "APP_ENV_BUILD"
ENV_SITE_NAME_KEYWORD = "ENV_SITE_NAME_KEYWORD"
LOG_PM2_PATH = "LOG_PM2_PATH"


def default_parameters() -> List[Dict[str, str]]:
    """Rows seeded into an empty ``parameters`` table."""
    build = settings.build
    return [
        {
            "key": PATH_PROJECT,
            "value": build.path_project,
            "type": "path",
            "description": "Base path for all projects and sites",
        },
        {
            "key": DEV_EMAIL,
            "value": build.dev_email,
            "type": "email",
            "description": "Default developer email for notifications",
        },
        {
            "key": GIT_AUTO_PULL,
            "value": "true",
            "type": "boolean",
            "description": "Enable automatic git pull during build process",
        },
        {
            "key": NPM_INSTALL_ON_BUILD,
            "value": "true",
            "type": "boolean",
            "description": "Enable npm install during build process",
        },
        {
            "key": NPM_RUN_BUILD,
            "value": "true",
            "type": "boolean",
            "description": "Enable npm run build during build process",
        },
        {
            "key": DEFAULT_PM2_PORT_START,
            "value": "3000",
            "type": "integer",
            "description": "Default starting port for PM2 applications",
        },
        {
            "key": APP_ENV_BUILD,
            "value": "",
            "type": "string",
            "description": 'Source .env file to copy from: "dev" (.env.develop), "prod" (.env.prod), else .env.example',
        },
        {
            "key": ENV_SITE_NAME_KEYWORD,
            "value": "SITE_NAME",
            "type": "string",
            "description": "Reserved keyword for site-specific env placeholders (e.g. ###SITE_NAME###API_KEY)",
        },
        {
            "key": LOG_PM2_PATH,
            "value": build.log_pm2_path,
            "type": "path",
            "description": "Path to PM2 log files directory for viewing site logs",
        },
    ]


DEFAULT_PARAMETERS = default_parameters()

_MISSING = object()


class ParameterStore:
    """Cached access to runtime parameters.

    Every read opens a short-lived session from ``session_factory`` on a
    cache miss. Keys that do not exist are cached too, so ``default`` is
    returned without a query until the key is written.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._cache: Dict[str, Any] = {}

    async def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        cached = self._cache.get(key, _MISSING)
        if cached is _MISSING and key not in self._cache:
            async with self._session_factory() as session:
                parameter = await ParameterRepository(session).get_by_key(key)
            cached = parameter.value if parameter is not None else _MISSING
            self._cache[key] = cached
        if cached is _MISSING or cached is None:
            return default
        return cached

    async def get_bool(self, key: str, default: bool = False) -> bool:
        value = await self.get_value(key)
        if value is None:
            return default
        return value.strip().lower() in TRUE_VALUES

    async def get_int(self, key: str, default: int = 0) -> int:
        value = await self.get_value(key)
        try:
            return int(value) if value is not None else default
        except ValueError:
            logger.warning(f"Parameter {key} is not an integer: {value!r}")
            return default

    async def set_value(
        self, key: str, value: Optional[str], type: str = "string", description: Optional[str] = None
    ) -> Parameter:
        async with self._session_factory() as session:
            parameter = await ParameterRepository(session).upsert(key, value, type, description)
        self.invalidate(key)
        return parameter

    async def delete(self, key: str) -> bool:
        async with self._session_factory() as session:
            deleted = await ParameterRepository(session).delete_by_key(key)
        self.invalidate(key)
        return deleted

    async def seed_defaults(self) -> int:
        """Insert the default parameters that are not stored yet.

        Returns:
            Number of parameters created
        """
        created = 0
        async with self._session_factory() as session:
            repo = ParameterRepository(session)
            for row in DEFAULT_PARAMETERS:
                if await repo.get_by_key(row["key"]) is None:
                    await repo.create(Parameter(**row))
                    created += 1
        if created:
            logger.info(f"Seeded {created} default parameters")
        self.clear_cache()
        return created

    def invalidate(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear_cache(self) -> None:
        self._cache.clear()
