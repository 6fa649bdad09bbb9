"""
Environment variable entity models.

Values are stored encrypted and substituted into a site's ``.env`` file at
build time. A variable is either global, attached to a build group by name,
or attached to one site.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Text, UniqueConstraint
from sqlmodel import Field

from ..base import Base, UTCDateTime, utc_now


class EnvVariableScope(str, Enum):
    GLOBAL = "global"
    GROUP = "group"
    SITE = "site"


class EnvVariable(Base, table=True):
    """Entity for an encrypted environment variable.

    Table: env_variables
    """

    __tablename__ = "env_variables"
    __table_args__ = (
        UniqueConstraint("variable_name", "group_name", "my_site_id", name="uq_env_variables_name_group_site"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    variable_name: str = Field(max_length=255, index=True)
    variable_value: str = Field(sa_type=Text, description="Encrypted value")
    group_name: Optional[str] = Field(default=None, max_length=255, index=True)
    my_site_id: Optional[int] = Field(default=None, foreign_key="my_site.id", ondelete="CASCADE", index=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    @property
    def scope(self) -> EnvVariableScope:
        if self.my_site_id is not None:
            return EnvVariableScope.SITE
        if self.group_name:
            return EnvVariableScope.GROUP
        return EnvVariableScope.GLOBAL

    def __repr__(self) -> str:
        return f"EnvVariable(id={self.id}, name={self.variable_name}, scope={self.scope.value})"
