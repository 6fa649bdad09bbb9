"""
Parameter repository.

Key based access to runtime parameters.
"""

from __future__ import annotations

from typing import Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.parameters import Parameter
from .base import SQLModelRepository


class ParameterRepository(SQLModelRepository[Parameter]):
    """Repository for parameter data access operations using SQLModel."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Parameter)

    async def get_by_key(self, key: str) -> Optional[Parameter]:
        result = await self.session.exec(select(Parameter).where(Parameter.key == key))
        return result.first()

    async def upsert(
        self, key: str, value: Optional[str], type: str = "string", description: Optional[str] = None
    ) -> Parameter:
        """Create or update the parameter stored under ``key``."""
        parameter = await self.get_by_key(key)
        if parameter is None:
            parameter = Parameter(key=key, value=value, type=type, description=description)
        else:
            parameter.value = value
            parameter.type = type
            if description is not None:
                parameter.description = description
        self.session.add(parameter)
        await self.session.commit()
        await self.session.refresh(parameter)
        return parameter

    async def delete_by_key(self, key: str) -> bool:
        parameter = await self.get_by_key(key)
        if parameter is None:
            return False
        await self.session.delete(parameter)
        await self.session.commit()
        return True
