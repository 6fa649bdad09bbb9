"""
Site entity models.

This module contains the database entity for a managed site. A site points at
a source checkout on disk, owns a generated build script and records the
outcome of its most recent builds.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, UTCDateTime, utc_now


class SiteBase(Base):
    """Base fields for site entity."""

    site_name: str = Field(max_length=255, unique=True, index=True, description="Unique site name")
    path_source_code: str = Field(max_length=1024, description="Absolute path of the source checkout")
    sh_content_dir: str = Field(max_length=1024, description="Storage-relative path of the build script")
    path_log: str = Field(max_length=1024, description="Storage-relative path of the latest log file")

    port_pm2: Optional[int] = Field(default=None, description="Port of the PM2 process, if any")
    api_endpoint_url: Optional[str] = Field(default=None, max_length=1024, description="Public API URL")
    is_generate_env: bool = Field(default=True, description="Compile .env after each build")


class Site(SiteBase, table=True):
    """Entity for a managed site.

    Table: my_site
    """

    __tablename__ = "my_site"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Build bookkeeping
    last_user_build: Optional[int] = Field(default=None, description="User that triggered the last build")
    last_build: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    last_build_success: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    last_build_fail: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    def __repr__(self) -> str:
        return f"Site(id={self.id}, site_name={self.site_name})"
