"""
Build group entity models.

A build group is a named set of sites that can be built together. Group
names double as the prefix of group-scoped ``.env`` placeholders.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import Base, UTCDateTime, utc_now


class BuildGroup(Base, table=True):
    """Entity for a build group.

    Table: build_groups
    """

    __tablename__ = "build_groups"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, unique=True, index=True)
    description: Optional[str] = Field(default=None)
    user_id: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    def __repr__(self) -> str:
        return f"BuildGroup(id={self.id}, name={self.name})"


class BuildGroupSite(Base, table=True):
    """Association between build groups and sites.

    Table: build_group_sites
    """

    __tablename__ = "build_group_sites"
    __table_args__ = (UniqueConstraint("build_group_id", "my_site_id", name="uq_build_group_sites_pair"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    build_group_id: int = Field(foreign_key="build_groups.id", ondelete="CASCADE", index=True)
    my_site_id: int = Field(foreign_key="my_site.id", ondelete="CASCADE", index=True)
