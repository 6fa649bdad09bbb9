"""
In-place editing of ``.env`` files.

Existing keys are replaced on their own line, new keys are appended, and
comments and ordering are preserved. Every edit leaves a timestamped backup
next to the file and replaces it through a temporary file.
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
import shutil
import stat
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import EnvFileWriteError

logger = logging.getLogger(__name__)

_NEEDS_QUOTES = re.compile(r'[\s#"\\$]')
_LINE_SPLIT = re.compile(r"\r\n|\n|\r")


def quote_if_needed(value: Any) -> str:
    """Render a value for the right-hand side of ``KEY=value``."""
    if value is None:
        return ""
    text = str(value)
    if _NEEDS_QUOTES.search(text):
        return '"' + text.replace('"', '\\"') + '"'
    return text


def parse_env(content: str) -> Dict[str, str]:
    """Parse ``KEY=value`` lines into a dict.

    Blank lines and ``#`` comments are skipped. Surrounding double or single
    quotes are removed from values; later duplicates win.
    """
    result: Dict[str, str] = {}
    for line in _LINE_SPLIT.split(content):
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export ") :].strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] == '"':
            value = value[1:-1].replace('\\"', '"')
        elif len(value) >= 2 and value[0] == value[-1] == "'":
            value = value[1:-1]
        result[key] = value
    return result


class EnvManager:
    """Update or create keys in the ``.env`` file of a project directory."""

    def update_or_create_env(self, path: str | Path, data: Mapping[Any, Any]) -> Path:
        """
        Set ``data`` in ``<path>/.env``.

        Args:
            path: Project root holding the ``.env`` file
            data: Keys and values to set; empty or non-string keys are skipped

        Returns:
            Path of the written ``.env`` file

        Raises:
            EnvFileWriteError: when the file cannot be created, backed up or replaced
        """
        env_path = Path(path) / ".env"

        try:
            if not env_path.exists():
                env_path.write_text("", encoding="utf-8")
        except OSError as e:
            raise EnvFileWriteError(f"Cannot create .env at {env_path}. Check permissions.") from e

        backup_path = env_path.with_name(f".env.{datetime.now().strftime('%Y%m%d_%H%M%S')}.bak")
        try:
            shutil.copy2(env_path, backup_path)
        except OSError as e:
            raise EnvFileWriteError(f"Failed to create backup of .env at {backup_path}") from e

        if not os.access(env_path, os.W_OK):
            with contextlib.suppress(OSError):
                env_path.chmod(0o666)
            if not os.access(env_path, os.W_OK):
                raise EnvFileWriteError(f".env file is not writable: {env_path}")

        try:
            contents = env_path.read_text(encoding="utf-8")
        except OSError as e:
            raise EnvFileWriteError(f"Failed to read .env at {env_path}") from e

        lines = _LINE_SPLIT.split(contents)

        key_line: Dict[str, int] = {}
        for i, line in enumerate(lines):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if "=" in line:
                key_line[line.split("=", 1)[0].strip()] = i

        for key, value in data.items():
            if not isinstance(key, str) or key == "":
                continue
            entry = f"{key}={quote_if_needed(value)}"
            if key in key_line:
                lines[key_line[key]] = entry
            else:
                # A trailing newline leaves an empty last element; append before it
                if lines and lines[-1] == "":
                    lines.insert(len(lines) - 1, entry)
                    key_line[key] = len(lines) - 2
                else:
                    lines.append(entry)
                    key_line[key] = len(lines) - 1

        self._replace(env_path, "\n".join(lines))
        logger.debug(f"Updated {env_path} keys={[k for k in data if isinstance(k, str) and k]}")
        return env_path

    @staticmethod
    def _replace(env_path: Path, new_contents: str) -> None:
        mode: Optional[int] = None
        with contextlib.suppress(OSError):
            mode = stat.S_IMODE(env_path.stat().st_mode)

        tmp_path = env_path.with_name(env_path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8", newline="\n") as f:
                f.write(new_contents)
            os.replace(tmp_path, env_path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise EnvFileWriteError(f"Failed to replace .env file at {env_path}") from e

        if mode is not None:
            try:
                env_path.chmod(mode)
            except OSError:
                logger.warning(f"Could not restore permissions {oct(mode)} on {env_path}")
