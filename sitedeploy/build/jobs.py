"""
Background jobs of the build pipeline.

``ProcessSiteBuild`` drives one build through ``processing`` to ``success`` or
``failed``; ``SiteDestructionJob`` tears down the files of a deleted site.
Jobs are executed by a ``BuildQueue`` and receive their collaborators through
a ``BuildContext``.
"""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from sitedeploy.core.database.base import utc_now
from sitedeploy.core.database.entities.build_histories import BuildHistory, BuildStatus
from sitedeploy.core.database.entities.sites import Site
from sitedeploy.core.database.entities.users import User
from sitedeploy.core.database.repositories.bundle import SqlRepoBundle, build_sql_repos_from_session
from sitedeploy.core.logging_config import get_build_logger
from sitedeploy.core.monitoring import log_build_event, log_error
from sitedeploy.server.core.config import settings

from .env_compiler import EnvCompiler
from .errors import ScriptNotFoundError
from .events import EventDispatcher, SiteBuildCompleted
from .parameters import ParameterStore
from .runner import RunResult, ScriptRunner
from .storage import SiteStorage

logger = get_build_logger()

LOG_SEPARATOR = "================="


@dataclass
class BuildContext:
    """Collaborators shared by every job."""

    session_factory: async_sessionmaker[AsyncSession]
    storage: SiteStorage
    parameters: ParameterStore
    dispatcher: EventDispatcher
    shell: str = "/bin/bash"
    encrypt_key: str = ""


def format_execution_log(site_name: str, status: str, result: RunResult, when) -> str:
    return (
        "=== Build Log ===\n"
        f"Site: {site_name}\n"
        f"Time: {when:%Y-%m-%d %H:%M:%S}\n"
        f"Status: {status}\n"
        f"Return Code: {result.return_code}\n"
        f"{LOG_SEPARATOR}\n\n" + result.output
    )


class ProcessSiteBuild:
    """Build one site.

    The job never retries: a half-applied build must be looked at before it
    runs again.
    """

    tries = 1

    def __init__(self, site_id: int, user_id: Optional[int] = None, history_id: Optional[int] = None) -> None:
        self.site_id = site_id
        self.user_id = user_id
        self.history_id = history_id
        self.timeout = settings.build.timeout_seconds

    def __repr__(self) -> str:
        return f"ProcessSiteBuild(site_id={self.site_id}, user_id={self.user_id}, history_id={self.history_id})"

    async def _start_history(self, repos: SqlRepoBundle) -> BuildHistory:
        if self.history_id is not None:
            history = await repos.histories.get_by_id(self.history_id)
            if history is not None:
                history.status = BuildStatus.PROCESSING.value
                return await repos.histories.update(history)
            logger.warning("Queued build history vanished, creating a new one", extra={"history_id": self.history_id})

        return await repos.histories.create(
            BuildHistory(
                site_id=self.site_id,
                user_id=self.user_id,
                status=BuildStatus.PROCESSING.value,
                output_log="Build started...",
            )
        )

    async def handle(self, ctx: BuildContext) -> None:
        async with ctx.session_factory() as session:
            repos = build_sql_repos_from_session(session=session)

            site = await repos.sites.get_by_id(self.site_id)
            if site is None:
                logger.error("ProcessSiteBuild: Site not found", extra={"site_id": self.site_id})
                if self.history_id is not None:
                    await self._mark_failed(repos, self.history_id, f"Site not found: {self.site_id}")
                return

            history = await self._start_history(repos)
            self.history_id = history.id
            user = await repos.users.get_by_id(self.user_id) if self.user_id is not None else None

            logger.info(
                "ProcessSiteBuild: Starting build",
                extra={"site_id": site.id, "site_name": site.site_name, "user_id": self.user_id},
            )
            log_build_event("build started", site.id, site.site_name, history.status, history.id)

            try:
                await self._build(ctx, repos, site, history, user)
            except Exception as e:
                logger.error(
                    "ProcessSiteBuild: Exception during build",
                    extra={"site_id": self.site_id, "error": str(e)},
                    exc_info=True,
                )
                log_error("BuildException", str(e), {"site_id": self.site_id, "history_id": self.history_id})
                await session.rollback()

                user = await repos.users.get_by_id(self.user_id) if self.user_id is not None else None
                history = await self._mark_failed(repos, self.history_id, f"Build failed with exception: {e}")
                site = await repos.sites.get_by_id(self.site_id)
                if site is not None:
                    site.last_build_fail = utc_now()
                    site = await repos.sites.update(site)
                if history is not None and site is not None:
                    await ctx.dispatcher.dispatch(
                        SiteBuildCompleted(history=history, site=site, status=BuildStatus.FAILED.value, user=user)
                    )

    async def _build(
        self, ctx: BuildContext, repos: SqlRepoBundle, site: Site, history: BuildHistory, user: Optional[User]
    ) -> None:
        script_path = ctx.storage.path(site.sh_content_dir)
        if not script_path.is_file():
            raise ScriptNotFoundError(str(script_path))

        result = await ScriptRunner(ctx.shell, self.timeout).run(script_path)
        status = BuildStatus.SUCCESS if result.return_code == 0 else BuildStatus.FAILED
        finished = utc_now()

        log_path = ctx.storage.execution_log_path(site.site_name, finished, status.value)
        ctx.storage.put(log_path, format_execution_log(site.site_name, status.value, result, finished))

        site.last_build = finished
        site.last_user_build = self.user_id
        site.path_log = log_path
        if status is BuildStatus.SUCCESS:
            site.last_build_success = finished
            logger.info(
                "ProcessSiteBuild: Build completed successfully",
                extra={"site_name": site.site_name, "return_code": result.return_code},
            )
        else:
            site.last_build_fail = finished
            logger.error(
                "ProcessSiteBuild: Build failed",
                extra={
                    "site_name": site.site_name,
                    "return_code": result.return_code,
                    "output_tail": "\n".join(result.output_lines[-10:]),
                },
            )
        site = await repos.sites.update(site)

        if site.is_generate_env:
            try:
                await EnvCompiler(repos, ctx.parameters, ctx.encrypt_key).compile(site)
            except Exception as e:
                logger.warning("Failed to generate env file", extra={"site_name": site.site_name, "error": str(e)})

        history.status = status.value
        history.output_log = result.output
        history = await repos.histories.update(history)

        log_build_event("build finished", site.id, site.site_name, status.value, history.id)
        await ctx.dispatcher.dispatch(SiteBuildCompleted(history=history, site=site, status=status.value, user=user))

    @staticmethod
    async def _mark_failed(repos: SqlRepoBundle, history_id: Optional[int], output: str) -> Optional[BuildHistory]:
        if history_id is None:
            return None
        history = await repos.histories.get_by_id(history_id)
        if history is None:
            return None
        history.status = BuildStatus.FAILED.value
        history.output_log = output
        return await repos.histories.update(history)

    async def failed(self, ctx: BuildContext, exc: BaseException) -> None:
        """Called by the queue when the job was aborted from outside (timeout)."""
        logger.error("ProcessSiteBuild: Job failed completely", extra={"site_id": self.site_id, "error": str(exc)})
        async with ctx.session_factory() as session:
            repos = build_sql_repos_from_session(session=session)
            history = await repos.histories.get_by_id(self.history_id) if self.history_id is not None else None
            if history is not None and not BuildStatus(history.status).is_terminal:
                reason = str(exc) or type(exc).__name__
                await self._mark_failed(repos, history.id, f"Build failed with exception: {reason}")


class SiteDestructionJob:
    """Remove a site's PM2 process, source directory and storage directory.

    Every step is best-effort: a failure is logged and the next step runs.
    """

    tries = 1
    timeout = 300

    def __init__(self, site_path: str, storage_path: Optional[str] = None, pm2_name: Optional[str] = None) -> None:
        self.site_path = site_path
        self.storage_path = storage_path
        self.pm2_name = pm2_name

    def __repr__(self) -> str:
        return f"SiteDestructionJob(site_path={self.site_path!r}, pm2_name={self.pm2_name!r})"

    async def _delete_pm2_process(self) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                "pm2",
                "delete",
                self.pm2_name,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            output, _ = await process.communicate()
            logger.info(
                "pm2 delete finished",
                extra={"pm2_name": self.pm2_name, "return_code": process.returncode, "output": output.decode(errors="replace")},
            )
        except OSError as e:
            logger.warning("pm2 delete could not run", extra={"pm2_name": self.pm2_name, "error": str(e)})

    @staticmethod
    async def _remove_directory(path: Optional[str]) -> None:
        if not path or not Path(path).is_dir():
            return
        try:
            await asyncio.to_thread(shutil.rmtree, path)
            logger.info("Removed directory", extra={"directory": path})
        except OSError as e:
            logger.warning("Failed to remove directory", extra={"directory": path, "error": str(e)})

    async def handle(self, ctx: Optional[BuildContext] = None) -> None:
        if self.pm2_name:
            await self._delete_pm2_process()
        await self._remove_directory(self.site_path)
        await self._remove_directory(self.storage_path)

    async def failed(self, ctx: Optional[BuildContext], exc: BaseException) -> None:
        logger.error("Site destruction aborted", extra={"site_path": self.site_path, "error": str(exc)})
