"""
PM2 Log Viewer Endpoints.

Browse the PM2 log directory (``LOG_PM2_PATH`` parameter) and page through
log files newest first. PM2 keeps one folder per app; the ``folder`` query
parameter selects it. Files are read in a worker thread.
"""

import asyncio
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Query

from sitedeploy.build import log_parser
from sitedeploy.build.errors import InvalidLogPathError, LogFileNotFoundError
from sitedeploy.build.parameters import LOG_PM2_PATH, ParameterStore
from sitedeploy.server.core.config import settings
from sitedeploy.server.schemas import LogPage
from sitedeploy.server.services.deps import ParameterStoreDep

router = APIRouter()


async def _base_path(parameters: ParameterStore) -> str:
    return await parameters.get_value(LOG_PM2_PATH) or settings.build.log_pm2_path


async def _resolve(parameters: ParameterStore, filename: str, folder: Optional[str]) -> Path:
    base = await _base_path(parameters)
    if folder:
        path = log_parser.resolve_log_file(base, folder, filename)
    else:
        if "/" in filename or "\\" in filename or filename in (".", ".."):
            raise InvalidLogPathError(f"Invalid log file name: {filename!r}")
        path = Path(base) / filename
    if not path.name.endswith(".log"):
        raise InvalidLogPathError(f"Not a log file: {filename}")
    if not log_parser.file_exists(path):
        raise LogFileNotFoundError(str(path))
    return path


@router.get(
    "",
    summary="List PM2 Logs",
    description="List the app folders and log files of the PM2 log directory, or of one app folder.",
)
async def list_pm2_logs(
    parameters: ParameterStoreDep,
    folder: Optional[str] = Query(default=None, description="App folder inside the PM2 log directory."),
):
    return await asyncio.to_thread(log_parser.list_pm2_logs, await _base_path(parameters), folder or "")


@router.get(
    "/{filename}",
    response_model=LogPage,
    summary="Read PM2 Log",
    description="One page of a log file, newest lines first. Page 1 is the end of the file.",
    responses={400: {"description": "Invalid log path"}, 404: {"description": "Log file not found"}},
)
async def read_pm2_log(
    filename: str,
    parameters: ParameterStoreDep,
    folder: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=200, ge=1, le=5000),
) -> LogPage:
    path = await _resolve(parameters, filename, folder)
    page_data = await asyncio.to_thread(log_parser.read_log_file, path, limit=limit, page=page)
    return LogPage(**page_data)


@router.get(
    "/{filename}/advance",
    response_model=LogPage,
    summary="Read PM2 Log (grouped)",
    description="One page of log entries with stack traces grouped, newest first, optionally filtered by `query`.",
    responses={400: {"description": "Invalid log path"}, 404: {"description": "Log file not found"}},
)
async def read_pm2_log_advance(
    filename: str,
    parameters: ParameterStoreDep,
    folder: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=100, ge=1, le=5000),
    query: Optional[str] = None,
) -> LogPage:
    path = await _resolve(parameters, filename, folder)
    page_data = await asyncio.to_thread(log_parser.read_log_file_advance, path, limit=limit, page=page, query=query)
    return LogPage(**page_data)
