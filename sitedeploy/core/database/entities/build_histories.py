"""
Build history entity models.

Each build of a site produces one history row that walks through
``queued -> processing -> success | failed``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field

from ..base import Base, UTCDateTime, utc_now


class BuildStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildStatus.SUCCESS, BuildStatus.FAILED)


def format_duration(started: Optional[datetime], finished: Optional[datetime]) -> str:
    """Render the elapsed time between two timestamps for humans.

    Returns ``"—"`` when either timestamp is missing.
    """
    if started is None or finished is None:
        return "—"

    seconds = max(int((finished - started).total_seconds()), 0)
    if seconds < 60:
        return f"{seconds}s"

    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m" if seconds == 0 else f"{minutes}m {seconds}s"

    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


class BuildHistory(Base, table=True):
    """Entity for the build history of a site.

    Table: build_histories
    """

    __tablename__ = "build_histories"

    id: Optional[int] = Field(default=None, primary_key=True)
    site_id: int = Field(foreign_key="my_site.id", ondelete="CASCADE", index=True)
    user_id: Optional[int] = Field(default=None, index=True)

    status: str = Field(default=BuildStatus.QUEUED.value, max_length=32, index=True)
    output_log: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime, index=True)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    @property
    def duration(self) -> str:
        return format_duration(self.created_at, self.updated_at)

    def __repr__(self) -> str:
        return f"BuildHistory(id={self.id}, site_id={self.site_id}, status={self.status})"
