"""
Parameter entity models.

Parameters are runtime key/value settings editable through the API, such as
the project root or which build steps are enabled.
"""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field

from ..base import Base


class Parameter(Base, table=True):
    """Entity for a runtime parameter.

    Table: parameters
    """

    __tablename__ = "parameters"

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(max_length=255, unique=True, index=True)
    value: Optional[str] = Field(default=None)
    type: str = Field(default="string", max_length=32)
    description: Optional[str] = Field(default=None)

    def __repr__(self) -> str:
        return f"Parameter(key={self.key}, value={self.value})"
