"""
Build history repository.

Queries over the build history of a site: latest status and the history
listing joined with the triggering user's name.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.build_histories import BuildHistory
from ..entities.users import User
from .base import SQLModelRepository


class BuildHistoryRepository(SQLModelRepository[BuildHistory]):
    """Repository for build history data access operations using SQLModel."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, BuildHistory)

    async def latest_for_site(self, site_id: int) -> Optional[BuildHistory]:
        """Get the most recent build of a site.

        Args:
            site_id: Site identifier

        Returns:
            Latest BuildHistory or None when the site was never built
        """
        stmt = (
            select(BuildHistory)
            .where(BuildHistory.site_id == site_id)
            .order_by(col(BuildHistory.created_at).desc(), col(BuildHistory.id).desc())
            .limit(1)
        )
        result = await self.session.exec(stmt)
        return result.first()

    async def list_for_site(
        self, site_id: int, limit: Optional[int] = None
    ) -> List[Tuple[BuildHistory, Optional[str]]]:
        """List builds of a site newest first, paired with the user name.

        Args:
            site_id: Site identifier
            limit: Maximum records to return

        Returns:
            List of ``(history, user_name)`` tuples; ``user_name`` is None for
            builds without a known user
        """
        stmt = (
            select(BuildHistory, User.name)
            .join(User, col(BuildHistory.user_id) == col(User.id), isouter=True)
            .where(BuildHistory.site_id == site_id)
            .order_by(col(BuildHistory.created_at).desc(), col(BuildHistory.id).desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.exec(stmt)
        return [(history, name) for history, name in result.all()]
