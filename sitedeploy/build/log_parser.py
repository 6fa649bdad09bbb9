"""
PM2 log viewer.

Parses PM2 log lines (``2025-11-18 05:13 +00:00: message``), classifies them
by level and pages through files newest first.
"""

from __future__ import annotations

import math
import os
import re
from itertools import islice
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional
from urllib.parse import quote_plus

from .errors import InvalidLogPathError

TIMESTAMP_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2} \d{2}:\d{2} [+-]\d{2}:\d{2}):\s*(.*)")
ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")
HTTP_METHOD_PATTERN = re.compile(r"^(GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)\s+")
HTTP_ERROR_STATUS_PATTERN = re.compile(r"\s(4\d{2}|5\d{2})\s")
JS_ERROR_PATTERN = re.compile(r"TypeError|ReferenceError|SyntaxError")

ERROR_WORDS = ("error", "exception", "fatal", "failed")
WARNING_WORDS = ("warning", "warn", "deprecated")


def strip_ansi(text: str) -> str:
    return ANSI_PATTERN.sub("", text)


def detect_level(message: str, is_error_file: bool = False) -> str:
    lowered = message.lower()
    if is_error_file or any(word in lowered for word in ERROR_WORDS) or JS_ERROR_PATTERN.search(message):
        return "ERROR"

    if HTTP_METHOD_PATTERN.match(message):
        if HTTP_ERROR_STATUS_PATTERN.search(message):
            return "HTTP_ERROR"
        return "HTTP"

    if any(word in lowered for word in WARNING_WORDS):
        return "WARNING"

    if "debug" in lowered:
        return "DEBUG"

    return "INFO"


def parse_log_line(line: str, is_error_file: bool = False) -> Dict[str, Any]:
    """Split a raw line into timestamp, level and ANSI-free message."""
    timestamp = None
    message = line
    match = TIMESTAMP_PATTERN.match(line)
    if match:
        timestamp, message = match.group(1), match.group(2)

    message = strip_ansi(message).strip()
    return {
        "timestamp": timestamp,
        "level": detect_level(message, is_error_file),
        "message": message,
        "raw": line,
    }


def format_file_size(size: int) -> str:
    units = ["B", "KB", "MB", "GB"]
    factor = (len(str(size)) - 1) // 3
    unit = units[factor] if factor < len(units) else "TB"
    return f"{size / math.pow(1024, factor):.2f} {unit}"


def generate_links(page: int, total_pages: int, url: Callable[[int], str]) -> List[Dict[str, Any]]:
    """Pagination links: previous, first, a window of two around ``page``, last, next."""
    links: List[Dict[str, Any]] = [
        {"url": url(page - 1) if page > 1 else None, "label": "&laquo; Previous", "active": False}
    ]
    for i in range(1, total_pages + 1):
        if i == 1 or i == total_pages or page - 2 <= i <= page + 2:
            links.append({"url": url(i), "label": str(i), "active": i == page})
        elif links[-1]["label"] != "...":
            links.append({"url": None, "label": "...", "active": False})
    links.append({"url": url(page + 1) if page < total_pages else None, "label": "Next &raquo;", "active": False})
    return links


def _empty_page(limit: int, advance: bool = False) -> Dict[str, Any]:
    page: Dict[str, Any] = {
        "data": [],
        "current_page": 1,
        "last_page": 1,
        "per_page": limit,
        "total": 0,
        "prev_page_url": None,
        "next_page_url": None,
        "links": [],
        "file_size": 0,
    }
    if advance:
        page["file_size_formatted"] = format_file_size(0)
    return page


def _is_error_file(path: Path) -> bool:
    return "error" in path.name.lower()


def _open_log(path: Path):
    return open(path, "r", encoding="utf-8", errors="replace")


def _count_lines(path: Path) -> int:
    with _open_log(path) as f:
        return sum(1 for _ in f)


def read_log_file(file_path: str | Path, limit: int = 200, page: int = 1) -> Dict[str, Any]:
    """
    Read one page of a log file, newest lines first.

    Page 1 holds the last ``limit`` lines of the file, page 2 the ``limit``
    lines before them, and so on. The file is streamed twice (count, then the
    page window) so only one page is held in memory.
    """
    path = Path(file_path)
    limit = max(1, limit)
    if not path.is_file():
        return _empty_page(limit)

    total = _count_lines(path)
    total_pages = max(1, math.ceil(total / limit))
    page = max(1, min(page, total_pages))

    end = total - (page - 1) * limit
    start = max(0, end - limit)

    is_error_file = _is_error_file(path)
    entries = []
    with _open_log(path) as f:
        for index, raw in enumerate(islice(f, start, end), start=start):
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue
            parsed = parse_log_line(line, is_error_file)
            parsed["line_number"] = index + 1
            entries.append(parsed)
    entries.reverse()

    def url(p: int) -> str:
        return f"?page={p}"

    return {
        "data": entries,
        "current_page": page,
        "last_page": total_pages,
        "per_page": limit,
        "total": total,
        "prev_page_url": url(page - 1) if page > 1 else None,
        "next_page_url": url(page + 1) if page < total_pages else None,
        "links": generate_links(page, total_pages, url),
        "file_size": path.stat().st_size,
    }


def _iter_entries(path: Path, query: Optional[str]) -> Iterator[Dict[str, Any]]:
    """Grouped entries in file order; stack-trace lines join the entry above them."""
    is_error_file = _is_error_file(path)
    needle = query.lower() if query and query.strip() else None
    current: Optional[Dict[str, Any]] = None

    def matches(entry: Dict[str, Any]) -> bool:
        if needle is None:
            return True
        return needle in entry["message"].lower() or any(needle in trace.lower() for trace in entry["stack_trace"])

    with _open_log(path) as f:
        for line_number, raw in enumerate(f, start=1):
            line = raw.rstrip("\r\n")
            if not line.strip():
                continue
            match = TIMESTAMP_PATTERN.match(line)
            if match:
                if current is not None and matches(current):
                    yield current
                message = strip_ansi(match.group(2)).strip()
                current = {
                    "timestamp": match.group(1),
                    "message": message,
                    "level": detect_level(message, is_error_file),
                    "stack_trace": [],
                    "line_number": line_number,
                }
            elif current is not None:
                clean = strip_ansi(line).strip()
                if clean:
                    current["stack_trace"].append(clean)
                    if current["level"] != "ERROR" and ("error" in clean.lower() or "exception" in clean.lower()):
                        current["level"] = "ERROR"
    if current is not None and matches(current):
        yield current


def read_log_file_advance(
    file_path: str | Path, limit: int = 100, page: int = 1, query: Optional[str] = None
) -> Dict[str, Any]:
    """
    Read one page of grouped log entries, newest first.

    Lines without a timestamp are attached to the previous entry as its stack
    trace. ``query`` filters entries by message or stack trace, ignoring case.
    """
    path = Path(file_path)
    limit = max(1, limit)
    if not path.is_file():
        return _empty_page(limit, advance=True)

    total = sum(1 for _ in _iter_entries(path, query))
    total_pages = max(1, math.ceil(total / limit))
    page = max(1, min(page, total_pages))

    end = total - (page - 1) * limit
    start = max(0, end - limit)
    entries = list(islice(_iter_entries(path, query), start, end))
    entries.reverse()

    def url(p: int) -> str:
        return f"?page={p}" + (f"&query={quote_plus(query)}" if query else "")

    size = path.stat().st_size
    return {
        "data": entries,
        "current_page": page,
        "last_page": total_pages,
        "per_page": limit,
        "total": total,
        "prev_page_url": url(page - 1) if page > 1 else None,
        "next_page_url": url(page + 1) if page < total_pages else None,
        "links": generate_links(page, total_pages, url),
        "file_size": size,
        "file_size_formatted": format_file_size(size),
    }


def _safe_segment(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or "\\" in name or "\0" in name:
        raise InvalidLogPathError(f"Invalid log path segment: {name!r}")
    return name


def resolve_log_file(base_path: str | Path, subfolder: str, filename: str) -> Path:
    """Path of ``<base>/<subfolder>/<filename>``; both names must be single segments."""
    return Path(base_path) / _safe_segment(subfolder) / _safe_segment(filename)


def list_pm2_logs(base_path: str | Path, subfolder: str = "") -> Dict[str, Any]:
    """
    Describe the PM2 log directory for the viewer.

    Returns the folders (one per PM2 app, with error/out file counts and the
    newest error file) and the ``*.log`` files of ``base_path`` or of
    ``subfolder``.
    An unknown subfolder falls back to the base directory with ``not_found``.
    """
    base = Path(base_path)
    if not base.is_dir():
        return {
            "folders": [],
            "files": [],
            "subfolder": "",
            "not_found": False,
            "requested_folder": "",
            "base_path_error": f"Log directory does not exist: {base}. Please check LOG_PM2_PATH parameter.",
        }

    requested = subfolder
    not_found = False
    directory = base / _safe_segment(subfolder) if subfolder else base
    if not directory.is_dir():
        not_found = True
        directory = base
        subfolder = ""

    folders = []
    for folder in sorted((p for p in directory.iterdir() if p.is_dir()), key=lambda p: p.name):
        files = [p for p in folder.iterdir() if p.is_file()]
        error_files = [p for p in files if "error" in p.name]
        out_files = [p for p in files if "error" not in p.name and "out" in p.name]
        latest_error = max(error_files, key=lambda p: p.stat().st_mtime, default=None)
        folders.append(
            {
                "name": folder.name,
                "error_count": len(error_files),
                "out_count": len(out_files),
                "total_files": len(files),
                "latest_error_file": latest_error.name if latest_error else None,
                "latest_error_time": int(latest_error.stat().st_mtime) if latest_error else None,
            }
        )

    return {
        "folders": folders,
        "files": sorted(p.name for p in directory.iterdir() if p.is_file() and p.suffix == ".log"),
        "subfolder": subfolder,
        "not_found": not_found,
        "requested_folder": requested,
        "base_path_error": None,
    }


def file_exists(path: str | Path) -> bool:
    return os.path.isfile(path)
