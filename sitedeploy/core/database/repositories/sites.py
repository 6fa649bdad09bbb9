"""
Site repository.

Data access for managed sites, including lookup by name and the cleanup of
dependent rows on delete.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.build_groups import BuildGroupSite
from ..entities.build_histories import BuildHistory
from ..entities.env_variables import EnvVariable
from ..entities.sites import Site
from .base import SQLModelRepository


class SiteRepository(SQLModelRepository[Site]):
    """Repository for site data access operations using SQLModel."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Site)

    async def get_by_name(self, site_name: str) -> Optional[Site]:
        """Get a site by its unique name.

        Args:
            site_name: Site name

        Returns:
            Site instance or None
        """
        result = await self.session.exec(select(Site).where(Site.site_name == site_name))
        return result.first()

    async def get_by_id_or_name(self, identifier: str | int) -> Optional[Site]:
        """Resolve a site by numeric id first, then by name."""
        if isinstance(identifier, int) or str(identifier).isdigit():
            site = await self.get_by_id(int(identifier))
            if site is not None:
                return site
        return await self.get_by_name(str(identifier))

    async def list_by_ids(self, site_ids: List[int]) -> List[Site]:
        if not site_ids:
            return []
        result = await self.session.exec(select(Site).where(col(Site.id).in_(site_ids)).order_by(Site.id))
        return list(result.all())

    async def delete(self, entity_id: int) -> bool:
        """Delete a site together with its histories, variables and group links."""
        site = await self.get_by_id(entity_id)
        if site is None:
            return False
        await self.session.exec(delete(BuildHistory).where(col(BuildHistory.site_id) == entity_id))
        await self.session.exec(delete(EnvVariable).where(col(EnvVariable.my_site_id) == entity_id))
        await self.session.exec(delete(BuildGroupSite).where(col(BuildGroupSite.my_site_id) == entity_id))
        await self.session.delete(site)
        await self.session.commit()
        return True
