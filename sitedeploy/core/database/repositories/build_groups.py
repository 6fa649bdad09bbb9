"""
Build group repository.

Group CRUD plus management of the group/site association table.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.build_groups import BuildGroup, BuildGroupSite
from .base import SQLModelRepository


class BuildGroupRepository(SQLModelRepository[BuildGroup]):
    """Repository for build group data access operations using SQLModel."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, BuildGroup)

    async def get_by_name(self, name: str) -> Optional[BuildGroup]:
        result = await self.session.exec(select(BuildGroup).where(BuildGroup.name == name))
        return result.first()

    async def site_ids(self, group_id: int) -> List[int]:
        """List the ids of the sites in a group, in insertion order."""
        stmt = (
            select(BuildGroupSite.my_site_id)
            .where(BuildGroupSite.build_group_id == group_id)
            .order_by(BuildGroupSite.id)
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def sync_sites(self, group_id: int, site_ids: List[int]) -> List[int]:
        """Replace the sites of a group with ``site_ids``.

        Args:
            group_id: Build group identifier
            site_ids: Complete list of site identifiers for the group

        Returns:
            The de-duplicated site identifiers now attached to the group
        """
        wanted = list(dict.fromkeys(site_ids))
        current = set(await self.site_ids(group_id))

        stale = current - set(wanted)
        if stale:
            await self.session.exec(
                delete(BuildGroupSite).where(
                    col(BuildGroupSite.build_group_id) == group_id,
                    col(BuildGroupSite.my_site_id).in_(sorted(stale)),
                )
            )
        for site_id in wanted:
            if site_id not in current:
                self.session.add(BuildGroupSite(build_group_id=group_id, my_site_id=site_id))

        await self.session.commit()
        return wanted

    async def delete(self, entity_id: int) -> bool:
        group = await self.get_by_id(entity_id)
        if group is None:
            return False
        await self.session.exec(delete(BuildGroupSite).where(col(BuildGroupSite.build_group_id) == entity_id))
        await self.session.delete(group)
        await self.session.commit()
        return True
