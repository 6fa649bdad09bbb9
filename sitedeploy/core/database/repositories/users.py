"""
User repository.

Lookups needed for build attribution and notification recipients.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..entities.users import User
from .base import SQLModelRepository


class UserRepository(SQLModelRepository[User]):
    """Repository for user data access operations using SQLModel."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.exec(select(User).where(User.email == email))
        return result.first()

    async def names_by_id(self, user_ids: Iterable[int]) -> Dict[int, str]:
        """Map user ids to display names, skipping unknown ids."""
        ids = {uid for uid in user_ids if uid is not None}
        if not ids:
            return {}
        result = await self.session.exec(select(User).where(col(User.id).in_(sorted(ids))))
        return {user.id: user.name for user in result.all()}
