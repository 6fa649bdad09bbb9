"""
Compilation of a site's ``.env`` file.

The compiler copies an environment template from the site checkout to
``.env``, substitutes ``###`` placeholders with stored (encrypted) variables
and finally pins a few site specific keys.

Placeholder forms:

    ###VAR                  global variable
    ###SITE_NAME###VAR      variable of the site being built (keyword is configurable)
    ###<site_name>###VAR    variable of the named site
    ###<group>###VAR        variable of the named build group
"""

from __future__ import annotations

import os
import re
import shutil
from pathlib import Path
from typing import Dict, Optional, Tuple

from sitedeploy.core.crypto import decrypt_value
from sitedeploy.core.database.entities.env_variables import EnvVariable
from sitedeploy.core.database.entities.sites import Site
from sitedeploy.core.database.repositories.bundle import SqlRepoBundle
from sitedeploy.core.logging_config import get_build_logger

from .env_manager import EnvManager
from .errors import EnvFileWriteError, EnvSourceNotFoundError
from .parameters import APP_ENV_BUILD, ENV_SITE_NAME_KEYWORD, ParameterStore

logger = get_build_logger()

PLACEHOLDER_PATTERN = re.compile(r"###([A-Z0-9_]+)(###([A-Z0-9_]+))?")

ENV_EXAMPLE = ".env.example"
ENV_SOURCES = {
    "prod": ".env.prod",
    "dev": ".env.develop",
}


class EnvCompiler:
    """Build the ``.env`` file of a site from its template and stored variables."""

    def __init__(
        self,
        repos: SqlRepoBundle,
        parameters: ParameterStore,
        encrypt_key: str,
        env_manager: Optional[EnvManager] = None,
    ) -> None:
        self.repos = repos
        self.parameters = parameters
        self.encrypt_key = encrypt_key
        self.env_manager = env_manager or EnvManager()

    async def determine_env_source_path(self, project_root: str | Path) -> Path:
        """
        Pick the template file for the current ``APP_ENV_BUILD``.

        Raises:
            EnvSourceNotFoundError: when neither the preferred file nor ``.env.example`` exists
        """
        root = Path(project_root)
        app_env = (await self.parameters.get_value(APP_ENV_BUILD, "")) or ""
        source_file = ENV_SOURCES.get(app_env.strip().lower(), ENV_EXAMPLE)

        source_path = root / source_file
        if source_path.is_file():
            return source_path

        if source_file != ENV_EXAMPLE:
            fallback = root / ENV_EXAMPLE
            if fallback.is_file():
                logger.warning(
                    "Env source missing, falling back to .env.example",
                    extra={"preferred": source_file, "project_root": str(root)},
                )
                return fallback

        raise EnvSourceNotFoundError(f"No valid .env source file found. Checked: {source_path}")

    def _decrypt(self, variable: EnvVariable) -> str:
        plain = decrypt_value(variable.variable_value, self.encrypt_key)
        return plain if plain is not None else variable.variable_value

    async def _resolve(self, prefix: Optional[str], name: str, site: Site, keyword: str) -> Optional[EnvVariable]:
        env_vars = self.repos.env_variables
        if prefix is None:
            return await env_vars.get_global(name)
        if prefix.upper() == keyword:
            return await env_vars.get_for_site(name, site.id)
        named_site = await self.repos.sites.get_by_name(prefix)
        if named_site is not None:
            return await env_vars.get_for_site(name, named_site.id)
        return await env_vars.get_for_group(name, prefix)

    async def replace_placeholders(self, content: str, site: Site) -> Tuple[str, int]:
        """
        Substitute every resolvable placeholder in ``content``.

        Unresolved placeholders are left in place and logged as warnings.

        Returns:
            The new content and the number of distinct placeholders replaced
        """
        matches = list(PLACEHOLDER_PATTERN.finditer(content))
        if not matches:
            return content, 0

        logger.info(
            "Found placeholders to replace",
            extra={"count": len(matches), "site_id": site.id, "site_name": site.site_name},
        )
        keyword = ((await self.parameters.get_value(ENV_SITE_NAME_KEYWORD, "SITE_NAME")) or "SITE_NAME").upper()

        values: Dict[str, str] = {}
        for match in matches:
            placeholder = match.group(0)
            if placeholder in values:
                continue
            prefix, name = (match.group(1), match.group(3)) if match.group(3) else (None, match.group(1))
            variable = await self._resolve(prefix, name, site, keyword)
            if variable is None:
                logger.warning(
                    "Env variable not found for placeholder",
                    extra={"placeholder": placeholder, "site_id": site.id},
                )
                continue
            values[placeholder] = self._decrypt(variable)

        new_content = PLACEHOLDER_PATTERN.sub(lambda m: values.get(m.group(0), m.group(0)), content)
        logger.info("Placeholder replacement complete", extra={"replaced_count": len(values), "site_id": site.id})
        return new_content, len(values)

    async def compile(self, site: Site) -> Path:
        """
        Generate ``<path_source_code>/.env`` for a site.

        Returns:
            Path of the written ``.env`` file
        """
        project_root = Path(site.path_source_code.rstrip("/\\") or "/")
        try:
            source_path = await self.determine_env_source_path(project_root)
            project_root.mkdir(parents=True, exist_ok=True)
            target_path = project_root / ".env"

            logger.info("Copying env source file", extra={"source": source_path.name, "target": str(target_path)})
            try:
                shutil.copyfile(source_path, target_path)
                os.chmod(target_path, 0o664)
            except OSError as e:
                raise EnvFileWriteError(f"Failed to copy {source_path} to {target_path}. Check permissions.") from e

            content = target_path.read_text(encoding="utf-8")
            new_content, _ = await self.replace_placeholders(content, site)
            if new_content != content:
                target_path.write_text(new_content, encoding="utf-8")

            source_content = source_path.read_text(encoding="utf-8")
            updates: Dict[str, object] = {}
            if site.port_pm2:
                updates["PORT"] = site.port_pm2
            if re.search(r"^VITE_API_URL=", source_content, re.MULTILINE) and site.api_endpoint_url:
                updates["VITE_API_URL"] = site.api_endpoint_url
            if re.search(r"^VITE_WEB_NAME=", source_content, re.MULTILINE):
                updates["VITE_WEB_NAME"] = site.site_name

            if updates:
                self.env_manager.update_or_create_env(project_root, updates)
                logger.info("Env variables updated", extra={"path": str(target_path), "variables": list(updates)})
            return target_path
        except Exception as e:
            logger.warning("Failed to generate env file", extra={"site_name": site.site_name, "error": str(e)})
            raise
