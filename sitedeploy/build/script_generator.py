"""
Build script generation.

A site's build is a single shell script stored next to its logs. The script
changes into the source checkout, optionally pulls and builds it, and can
restart the site through the checkout's own ``pm2_dev.sh``. It never uses
``sudo``.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Optional, Protocol

from .parameters import (
    DEFAULT_PM2_PORT_START,
    GIT_AUTO_PULL,
    NPM_INSTALL_ON_BUILD,
    NPM_RUN_BUILD,
    ParameterStore,
)


@dataclass(frozen=True)
class ScriptOptions:
    """Feature flags of a generated build script."""

    git_auto_pull: bool = True
    npm_install: bool = True
    npm_run_build: bool = True
    default_pm2_port: int = 3000

    @classmethod
    async def from_parameters(cls, parameters: ParameterStore) -> "ScriptOptions":
        return cls(
            git_auto_pull=await parameters.get_bool(GIT_AUTO_PULL, True),
            npm_install=await parameters.get_bool(NPM_INSTALL_ON_BUILD, True),
            npm_run_build=await parameters.get_bool(NPM_RUN_BUILD, True),
            default_pm2_port=await parameters.get_int(DEFAULT_PM2_PORT_START, 3000),
        )


class BuildScriptGenerator(Protocol):
    def generate(
        self, site_name: str, source_path: str, include_pm2: bool, options: Optional[ScriptOptions] = None
    ) -> str: ...


_GIT_PULL_STEP = """\
echo "-----$(date): Start Pull Source-----"
git pull 2>&1
if [ $? -ne 0 ]; then
    echo "Error: git pull failed"
    exit 1
fi
"""

_NPM_INSTALL_STEP = """\
echo "-----$(date): NPM Install-----"
npm install 2>&1
"""

_NPM_BUILD_STEP = """\
echo "-----$(date): NPM BUILD-----"
npm run build 2>&1
if [ $? -ne 0 ]; then
    echo "Error: npm run build failed"
    exit 1
fi
"""

_PM2_STEP = """\
# Run pm2 script
echo "-----$(date): Starting PM2-----"
sh pm2_dev.sh 2>&1
if [ $? -ne 0 ]; then
    echo "Error: pm2_dev.sh script failed"
    exit 1
fi
"""


class BashScriptGenerator:
    """Generate ``#!/bin/bash`` build scripts."""

    def generate(
        self, site_name: str, source_path: str, include_pm2: bool, options: Optional[ScriptOptions] = None
    ) -> str:
        """
        Generate the build script of a site.

        Args:
            site_name: Unique site name, only used in the header comment
            source_path: Absolute path of the source checkout
            include_pm2: Append the PM2 restart step
            options: Feature flags; every step is enabled when omitted

        Returns:
            Script content with LF line endings
        """
        options = options or ScriptOptions()
        folder = shlex.quote(source_path)
        header_name = site_name.replace("\r", " ").replace("\n", " ")

        steps = []
        if options.git_auto_pull:
            steps.append(_GIT_PULL_STEP)
        if options.npm_install:
            steps.append(_NPM_INSTALL_STEP)
        if options.npm_run_build:
            steps.append(_NPM_BUILD_STEP)
        if include_pm2:
            steps.append(_PM2_STEP)

        script = (
            "#!/bin/bash\n"
            f"# Build script for {header_name}\n"
            "# All output goes to stdout and is captured by the build runner\n"
            "# This script runs WITHOUT sudo - ensure proper file permissions\n"
            "\n"
            'echo "-----$(date): Start script-----"\n'
            "\n"
            f'echo "-----$(date): cd "{folder}"-----"\n'
            f"cd {folder} 2>&1\n"
            "if [ $? -ne 0 ]; then\n"
            f'    echo "Error: Failed to change directory to "{folder}\n'
            "    exit 1\n"
            "fi\n"
            "\n"
            'echo "-----$(date): Git Status-----"\n'
            "git status 2>&1\n"
            "if [ $? -ne 0 ]; then\n"
            '    echo "Error: git status failed"\n'
            "    exit 1\n"
            "fi\n"
            "\n"
            + "\n".join(steps)
            + "\n"
            'echo "-----$(date): Build completed successfully-----"\n'
            "exit 0\n"
        )
        return script.replace("\r\n", "\n")
