"""
Site artifact storage.

Build scripts and build logs of every site live below one storage root:

    <root>/<site>/sh/<site>_build.sh
    <root>/<site>/log/<site>_first.log
    <root>/<site>/log/execution_<YYYYmmdd_HHMMSS>_<status>.log

All paths handed to and returned by ``SiteStorage`` are relative to the root
and use forward slashes.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import List

from .errors import InvalidLogPathError

logger = logging.getLogger(__name__)

EXECUTION_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


class SiteStorage:
    """Filesystem storage rooted at the site storage directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def path(self, relative: str) -> Path:
        """Absolute path of ``relative``.

        Raises:
            InvalidLogPathError: when the path escapes the storage root
        """
        candidate = (self.root / relative.lstrip("/")).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise InvalidLogPathError(f"Path escapes the storage root: {relative}")
        return candidate

    def exists(self, relative: str) -> bool:
        return self.path(relative).is_file()

    def get(self, relative: str) -> str:
        return self.path(relative).read_text(encoding="utf-8", errors="replace")

    def put(self, relative: str, contents: str) -> Path:
        target = self.path(relative)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="\n") as f:
            f.write(contents)
        return target

    def delete(self, relative: str) -> bool:
        target = self.path(relative)
        if not target.is_file():
            return False
        target.unlink()
        return True

    def files(self, directory: str) -> List[str]:
        """List the files directly inside ``directory`` as storage-relative paths."""
        folder = self.path(directory)
        if not folder.is_dir():
            return []
        return sorted(str(p.relative_to(self.root).as_posix()) for p in folder.iterdir() if p.is_file())

    def last_modified(self, relative: str) -> float:
        return self.path(relative).stat().st_mtime

    def delete_directory(self, directory: str) -> bool:
        folder = self.path(directory)
        if folder == self.root or not folder.is_dir():
            return False
        shutil.rmtree(folder)
        return True

    def move_directory(self, source: str, target: str) -> bool:
        src, dst = self.path(source), self.path(target)
        if not src.is_dir():
            return False
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(src), str(dst))
        return True

    # Site layout

    @staticmethod
    def site_path(site_name: str, subdir: str = "") -> str:
        path = site_name
        if subdir:
            path += "/" + subdir.strip("/")
        return path

    def shell_script_path(self, site_name: str) -> str:
        return self.site_path(site_name, f"sh/{site_name}_build.sh")

    def log_directory(self, site_name: str) -> str:
        return self.site_path(site_name, "log")

    def initial_log_path(self, site_name: str) -> str:
        return self.site_path(site_name, f"log/{site_name}_first.log")

    def execution_log_path(self, site_name: str, timestamp: datetime, status: str) -> str:
        stamp = timestamp.strftime(EXECUTION_TIMESTAMP_FORMAT)
        return self.site_path(site_name, f"log/execution_{stamp}_{status}.log")
