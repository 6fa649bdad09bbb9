"""
Site build service.

The service is the single entry point the API uses for sites: it creates
sites and their build scripts, queues builds, and reads back build state and
log files. It works on one request-scoped repository bundle.
"""

from __future__ import annotations

import os
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from sitedeploy.core.database.entities.build_histories import BuildHistory, BuildStatus
from sitedeploy.core.database.entities.sites import Site
from sitedeploy.core.database.repositories.bundle import SqlRepoBundle
from sitedeploy.core.logging_config import get_build_logger
from sitedeploy.core.monitoring import log_build_event

from .destruction import SiteDestructionService
from .errors import (
    BuildGroupNotFoundError,
    DuplicateSiteError,
    EmptyBuildGroupError,
    InvalidLogPathError,
    LogFileNotFoundError,
    SiteNotFoundError,
    UnsafePathError,
)
from .jobs import ProcessSiteBuild
from .parameters import ParameterStore
from .script_generator import BashScriptGenerator, BuildScriptGenerator, ScriptOptions
from .storage import SiteStorage

logger = get_build_logger()

OUTPUT_EXCERPT_LENGTH = 100


class SiteBuildService:
    def __init__(
        self,
        repos: SqlRepoBundle,
        storage: SiteStorage,
        parameters: ParameterStore,
        queue,
        generator: Optional[BuildScriptGenerator] = None,
    ) -> None:
        self.repos = repos
        self.storage = storage
        self.parameters = parameters
        self.queue = queue
        self.generator = generator or BashScriptGenerator()

    async def get_site(self, site_id: int) -> Site:
        site = await self.repos.sites.get_by_id(site_id)
        if site is None:
            raise SiteNotFoundError(site_id)
        return site

    async def resolve_site(self, id_or_name: str | int) -> Site:
        """Find a site by id first, then by name."""
        site = await self.repos.sites.get_by_id_or_name(id_or_name)
        if site is None:
            raise SiteNotFoundError(id_or_name)
        return site

    async def list_sites(self, limit: Optional[int] = None, offset: Optional[int] = None) -> List[Site]:
        return await self.repos.sites.list(limit=limit, offset=offset)

    async def _write_script(self, site_name: str, source_path: str, include_pm2: bool) -> str:
        options = await ScriptOptions.from_parameters(self.parameters)
        script = self.generator.generate(site_name, source_path, include_pm2, options)
        script_path = self.storage.shell_script_path(site_name)
        self.storage.put(script_path, script)
        return script_path

    async def create_site(
        self,
        site_name: str,
        path_source_code: str,
        include_pm2: bool = False,
        port_pm2: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> Site:
        """
        Register a site, generate its build script and its initial log.

        Raises:
            DuplicateSiteError: when a site with the same name exists
        """
        if await self.repos.sites.get_by_name(site_name) is not None:
            raise DuplicateSiteError(site_name)

        script_path = await self._write_script(site_name, path_source_code, include_pm2)
        initial_log = self.storage.initial_log_path(site_name)
        self.storage.put(initial_log, secrets.token_urlsafe(12))

        site = await self.repos.sites.create(
            Site(
                site_name=site_name,
                path_log=initial_log,
                sh_content_dir=script_path,
                is_generate_env=True,
                last_user_build=user_id,
                path_source_code=path_source_code,
                port_pm2=port_pm2,
            )
        )
        logger.info("Site created", extra={"site_id": site.id, "site_name": site.site_name, "pm2": include_pm2})
        return site

    async def queue_build(self, site_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        """Record a ``queued`` build and hand it to the job queue."""
        site = await self.get_site(site_id)
        history = await self.repos.histories.create(
            BuildHistory(site_id=site.id, user_id=user_id, status=BuildStatus.QUEUED.value)
        )
        history_id = history.id
        logger.info("Build queued", extra={"site_id": site.id, "history_id": history_id, "user_id": user_id})
        log_build_event("build queued", site.id, site.site_name, BuildStatus.QUEUED.value, history_id)

        await self.queue.dispatch(ProcessSiteBuild(site.id, user_id, history_id))
        return {"status": "queued", "site_id": site.id, "history_id": history_id}

    async def queue_group_build(self, group_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        group = await self.repos.build_groups.get_by_id(group_id)
        if group is None:
            raise BuildGroupNotFoundError(group_id)
        group_name = group.name

        site_ids = await self.repos.build_groups.site_ids(group_id)
        if not site_ids:
            raise EmptyBuildGroupError(group_name)

        history_ids = []
        for site_id in site_ids:
            queued = await self.queue_build(site_id, user_id)
            history_ids.append(queued["history_id"])

        logger.info("Group build queued", extra={"group_id": group_id, "count": len(history_ids)})
        return {"status": "queued", "group_id": group_id, "count": len(history_ids), "history_ids": history_ids}

    async def update_site(self, site_id: int, data: Mapping[str, Any]) -> Site:
        """
        Update editable fields of a site.

        Renaming a site moves its storage folder, rewrites its stored paths and
        regenerates its build script under the new name. The script is also
        regenerated when the PM2 port is set or cleared.
        """
        site = await self.get_site(site_id)
        regenerate = False

        new_name = data.get("site_name")
        if new_name and new_name != site.site_name:
            if await self.repos.sites.get_by_name(new_name) is not None:
                raise DuplicateSiteError(new_name)
            old_name = site.site_name
            self.storage.move_directory(old_name, new_name)
            old_script = f"{new_name}/sh/{old_name}_build.sh"
            if self.storage.exists(old_script):
                self.storage.delete(old_script)
            if site.path_log.startswith(f"{old_name}/"):
                site.path_log = new_name + site.path_log[len(old_name) :]
            site.site_name = new_name
            regenerate = True

        if "port_pm2" in data:
            port = data["port_pm2"] or None
            regenerate = regenerate or bool(port) != bool(site.port_pm2)
            site.port_pm2 = port
        if "api_endpoint_url" in data:
            site.api_endpoint_url = (data["api_endpoint_url"] or "").strip() or None
        if data.get("is_generate_env") is not None:
            site.is_generate_env = bool(data["is_generate_env"])

        if regenerate:
            site.sh_content_dir = await self._write_script(site.site_name, site.path_source_code, bool(site.port_pm2))

        site = await self.repos.sites.update(site)
        logger.info("Site updated", extra={"site_id": site.id, "fields": sorted(data), "script_regenerated": regenerate})
        return site

    async def regenerate_shell_script(self, site_id: int) -> bool:
        site = await self.get_site(site_id)
        include_pm2 = bool(site.port_pm2)
        options = await ScriptOptions.from_parameters(self.parameters)
        script = self.generator.generate(site.site_name, site.path_source_code, include_pm2, options)
        self.storage.put(site.sh_content_dir, script)
        logger.info(
            "Shell script regenerated",
            extra={"site_id": site.id, "site_name": site.site_name, "sh_content_dir": site.sh_content_dir},
        )
        return True

    async def get_log_content(self, site_id: int) -> Dict[str, Any]:
        site = await self.get_site(site_id)
        content = self.storage.get(site.path_log) if self.storage.exists(site.path_log) else ""
        return {"log_content": content, "site_name": site.site_name, "path_log": site.path_log}

    async def get_site_details(self, site_id: int) -> Dict[str, Any]:
        site = await self.get_site(site_id)

        sh_content = self.storage.get(site.sh_content_dir) if self.storage.exists(site.sh_content_dir) else ""

        env_content = ""
        if site.path_source_code:
            env_path = site.path_source_code.rstrip("/") + "/.env"
            if os.path.isfile(env_path) and os.access(env_path, os.R_OK):
                env_content = Path(env_path).read_text(encoding="utf-8", errors="replace")
            else:
                env_content = f"File .env not found or not readable at: {env_path}"

        builder = await self.repos.users.get_by_id(site.last_user_build) if site.last_user_build else None

        return {
            "id": site.id,
            "site_name": site.site_name,
            "sh_content": sh_content,
            "env_content": env_content,
            "last_path_log": site.path_log,
            "sh_content_dir": site.sh_content_dir,
            "created_at": site.created_at,
            "last_user_build": builder.name if builder is not None else "Unknown",
            "last_build_success": site.last_build_success,
            "last_build_fail": site.last_build_fail,
            "last_build": site.last_build,
            "port_pm2": site.port_pm2,
            "path_source_code": site.path_source_code,
            "api_endpoint_url": site.api_endpoint_url,
            "is_generate_env": site.is_generate_env,
        }

    async def get_build_status(self, site_id: int) -> Dict[str, Any]:
        await self.get_site(site_id)
        latest = await self.repos.histories.latest_for_site(site_id)
        if latest is None:
            return {"status": "unknown", "updated_at": None, "history_id": None}
        return {"status": latest.status, "updated_at": latest.updated_at, "history_id": latest.id}

    async def get_build_histories(self, site_id: int) -> List[Dict[str, Any]]:
        await self.get_site(site_id)
        rows = await self.repos.histories.list_for_site(site_id)
        return [
            {
                "id": history.id,
                "status": history.status,
                "output_excerpt": (history.output_log or "")[:OUTPUT_EXCERPT_LENGTH],
                "created_at": history.created_at,
                "user_name": user_name or "System",
                "output_log": history.output_log,
                "duration": history.duration,
            }
            for history, user_name in rows
        ]

    async def list_site_logs(self, site_id: int) -> List[Dict[str, Any]]:
        """List the ``.log`` files of a site, newest first."""
        site = await self.get_site(site_id)
        logs = []
        for file in self.storage.files(self.storage.log_directory(site.site_name)):
            if not file.endswith(".log"):
                continue
            modified = self.storage.last_modified(file)
            logs.append(
                {
                    "filename": os.path.basename(file),
                    "path": file,
                    "date": datetime.fromtimestamp(modified, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
                    "timestamp": int(modified),
                }
            )
        logs.sort(key=lambda entry: (entry["timestamp"], entry["filename"]), reverse=True)
        return logs

    async def view_log_file(self, site_id: int, log_path: str) -> Dict[str, str]:
        site = await self.get_site(site_id)
        if not log_path.startswith(f"{site.site_name}/log/") or ".." in log_path.split("/"):
            raise InvalidLogPathError("Invalid log path")
        if not self.storage.exists(log_path):
            raise LogFileNotFoundError(log_path)
        return {"filename": os.path.basename(log_path), "content": self.storage.get(log_path)}

    async def delete_site(self, site_id: int) -> List[str]:
        """
        Tear down a site and delete its records.

        Returns:
            Messages of the destruction service

        Raises:
            UnsafePathError: when the site's source path may not be removed
        """
        site = await self.get_site(site_id)
        destruction = SiteDestructionService(self.parameters, self.storage, self.queue)
        result = await destruction.destroy(site.path_source_code, site.site_name)
        if not result["success"]:
            raise UnsafePathError("; ".join(result["messages"]))

        await self.repos.sites.delete(site_id)
        logger.info("Site deleted", extra={"site_id": site_id})
        return list(result["messages"])
