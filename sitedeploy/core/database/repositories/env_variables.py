"""
Environment variable repository.

Scoped lookups used by the .env compiler and the filtered listing used by
the API.
"""

from __future__ import annotations

from typing import List, Optional

from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.env_variables import EnvVariable
from .base import QueryBuilder, SQLModelRepository


class EnvVariableRepository(SQLModelRepository[EnvVariable]):
    """Repository for environment variable data access operations using SQLModel."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, EnvVariable)

    async def get_global(self, name: str) -> Optional[EnvVariable]:
        stmt = select(EnvVariable).where(
            EnvVariable.variable_name == name,
            col(EnvVariable.group_name).is_(None),
            col(EnvVariable.my_site_id).is_(None),
        )
        result = await self.session.exec(stmt)
        return result.first()

    async def get_for_site(self, name: str, site_id: int) -> Optional[EnvVariable]:
        stmt = select(EnvVariable).where(
            EnvVariable.variable_name == name,
            EnvVariable.my_site_id == site_id,
        )
        result = await self.session.exec(stmt)
        return result.first()

    async def get_for_group(self, name: str, group_name: str) -> Optional[EnvVariable]:
        stmt = select(EnvVariable).where(
            EnvVariable.variable_name == name,
            EnvVariable.group_name == group_name,
            col(EnvVariable.my_site_id).is_(None),
        )
        result = await self.session.exec(stmt)
        return result.first()

    async def find_duplicate(
        self, name: str, group_name: Optional[str], site_id: Optional[int], exclude_id: Optional[int] = None
    ) -> Optional[EnvVariable]:
        """Find a variable with the same name and scope.

        NULL columns never collide in a SQL unique constraint, so the
        check is done explicitly before writes.
        """
        stmt = select(EnvVariable).where(EnvVariable.variable_name == name)
        stmt = stmt.where(
            col(EnvVariable.group_name).is_(None) if group_name is None else EnvVariable.group_name == group_name
        )
        stmt = stmt.where(
            col(EnvVariable.my_site_id).is_(None) if site_id is None else EnvVariable.my_site_id == site_id
        )
        if exclude_id is not None:
            stmt = stmt.where(EnvVariable.id != exclude_id)
        result = await self.session.exec(stmt)
        return result.first()

    async def search(
        self, name: Optional[str] = None, limit: Optional[int] = None, offset: Optional[int] = None
    ) -> List[EnvVariable]:
        """List variables whose name contains ``name`` (case-insensitive)."""
        stmt = select(EnvVariable).order_by(EnvVariable.variable_name, EnvVariable.id)
        if name:
            stmt = stmt.where(col(EnvVariable.variable_name).ilike(f"%{name}%"))
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        result = await self.session.exec(stmt)
        return list(result.all())

    async def count_matching(self, name: Optional[str] = None) -> int:
        return len(await self.search(name))
