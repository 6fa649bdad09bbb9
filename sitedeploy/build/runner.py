"""
Execution of build scripts.

Scripts run in a subprocess awaited on the event loop; stderr is merged into
stdout so the recorded output keeps the order the script produced it in.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from sitedeploy.core.logging_config import get_build_logger

from .errors import ScriptNotFoundError

logger = get_build_logger()


@dataclass
class RunResult:
    return_code: int
    output_lines: List[str] = field(default_factory=list)
    timed_out: bool = False
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.return_code == 0

    @property
    def output(self) -> str:
        return "\n".join(self.output_lines)


class ScriptRunner:
    """Run a build script with a shell interpreter and a time limit."""

    def __init__(self, shell: str = "/bin/bash", timeout: Optional[float] = 600) -> None:
        self.shell = shell
        self.timeout = timeout

    async def run(self, script_path: str | Path, cwd: Optional[str | Path] = None) -> RunResult:
        """
        Execute ``script_path`` and collect its output.

        Args:
            script_path: Absolute path of the script
            cwd: Working directory of the process (optional)

        Returns:
            RunResult; ``return_code`` is -1 when the script was killed on timeout

        Raises:
            ScriptNotFoundError: when the script file does not exist
        """
        path = Path(script_path)
        if not path.is_file():
            raise ScriptNotFoundError(str(path))

        logger.info("Executing build script", extra={"script": str(path), "shell": self.shell})
        start_time = time.monotonic()

        process = await asyncio.create_subprocess_exec(
            self.shell,
            str(path),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(cwd) if cwd is not None else None,
        )

        output: List[str] = []

        async def consume() -> int:
            assert process.stdout is not None
            async for raw in process.stdout:
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                output.append(line)
                logger.debug(line)
            return await process.wait()

        try:
            return_code = await asyncio.wait_for(consume(), timeout=self.timeout)
        except asyncio.TimeoutError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            duration = time.monotonic() - start_time
            message = f"Build script timed out after {self.timeout} seconds"
            output.append(message)
            logger.error(message, extra={"script": str(path)})
            return RunResult(return_code=-1, output_lines=output, timed_out=True, duration_seconds=duration)

        duration = time.monotonic() - start_time
        logger.info(
            f"Build script finished with exit code {return_code} (duration: {duration:.2f}s, lines: {len(output)})",
            extra={"script": str(path)},
        )
        return RunResult(return_code=return_code, output_lines=output, duration_seconds=duration)
