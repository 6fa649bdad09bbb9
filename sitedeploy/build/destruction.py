"""
Teardown of deleted sites.

Only directories strictly below the configured project root may be removed.
The project root itself and its siblings are always refused.
"""

from __future__ import annotations

import os
import posixpath
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Union

from sitedeploy.core.logging_config import get_logger
from sitedeploy.server.core.config import settings

from .errors import InvalidLogPathError
from .jobs import SiteDestructionJob
from .parameters import PATH_PROJECT, ParameterStore
from .storage import SiteStorage

logger = get_logger(__name__)

MIN_PATH_SEGMENTS = 3


def _normalize(path: str) -> str:
    """Forward slashes with ``.`` and ``..`` segments collapsed."""
    cleaned = path.strip().replace("\\", "/")
    return posixpath.normpath(cleaned) if cleaned else ""


def _is_below(path: str, root: str) -> bool:
    """True when ``path`` lies strictly below ``root`` (case-insensitive)."""
    if not path or not root:
        return False
    return PurePosixPath(root.lower()) in PurePosixPath(path.lower()).parents


class SiteDestructionService:
    def __init__(self, parameters: ParameterStore, storage: SiteStorage, queue) -> None:
        self.parameters = parameters
        self.storage = storage
        self.queue = queue

    @staticmethod
    def is_valid_project_path(path: str, project_root: str) -> bool:
        """
        An existing directory at least ``MIN_PATH_SEGMENTS`` levels deep whose
        real location is strictly below the real project root.

        Covers checkouts reached through a symlinked project root.
        """
        if not path.strip() or not project_root.strip():
            return False
        resolved = _normalize(os.path.realpath(path.strip()))
        if not os.path.isdir(resolved):
            return False
        segments = [s for s in resolved.split("/") if s]
        if len(segments) < MIN_PATH_SEGMENTS:
            return False
        return _is_below(resolved, _normalize(os.path.realpath(project_root.strip())))

    async def validate_path(self, path: str) -> bool:
        normalized = _normalize(path)
        if not normalized:
            logger.warning("SiteDestructionService: Empty path provided")
            return False

        project_root = await self.parameters.get_value(PATH_PROJECT, settings.build.path_project) or ""
        if _is_below(normalized, _normalize(project_root)):
            return True

        if self.is_valid_project_path(path, project_root):
            return True

        logger.warning(
            f"SiteDestructionService: Path not under project root (path={path!r}, project_root={project_root!r})"
        )
        return False

    async def destroy(self, site_folder_path: str, app_name: Optional[str] = None) -> Dict[str, Union[bool, List[str]]]:
        """
        Dispatch the teardown of a site.

        Args:
            site_folder_path: Source checkout of the site
            app_name: Site name; names the storage folder and the PM2 process

        Returns:
            ``{"success": bool, "messages": [...]}``
        """
        result: Dict[str, Union[bool, List[str]]] = {"success": False, "messages": []}
        messages: List[str] = result["messages"]  # type: ignore[assignment]

        if not await self.validate_path(site_folder_path):
            messages.append("Invalid or unsafe path. Aborting.")
            return result

        storage_folder = app_name or os.path.basename(site_folder_path.rstrip("/\\"))
        try:
            storage_path = self.storage.path(storage_folder)
        except InvalidLogPathError:
            storage_path = self.storage.root
        if storage_path == self.storage.root:
            logger.warning(f"SiteDestructionService: Storage folder resolves to the storage root ({storage_folder!r})")
            messages.append("Invalid storage folder. Aborting.")
            return result

        try:
            job = SiteDestructionJob(
                site_path=site_folder_path,
                storage_path=str(storage_path),
                pm2_name=app_name,
            )
            await self.queue.dispatch(job)
        except Exception as e:
            logger.error(f"Failed to dispatch SiteDestructionJob: {e}")
            messages.append("Failed to dispatch destruction job")
            return result

        messages.append("Destruction job dispatched")
        result["success"] = True
        return result
