"""
Repository bundle for dependency injection.

This module provides a convenience bundle of all repository instances
for easy dependency injection in services and build jobs.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlmodel.ext.asyncio.session import AsyncSession

from .build_groups import BuildGroupRepository
from .build_histories import BuildHistoryRepository
from .env_variables import EnvVariableRepository
from .parameters import ParameterRepository
from .sites import SiteRepository
from .users import UserRepository


@dataclass(frozen=True)
class SqlRepoBundle:
    """Convenience bundle of all SQL repositories sharing one session."""

    session: AsyncSession
    users: UserRepository
    sites: SiteRepository
    histories: BuildHistoryRepository
    env_variables: EnvVariableRepository
    build_groups: BuildGroupRepository
    parameters: ParameterRepository


def build_sql_repos_from_session(*, session: AsyncSession) -> SqlRepoBundle:
    """Build a SqlRepoBundle from an existing session.

    Args:
        session: Existing async session

    Returns:
        Bundle containing all repository instances
    """
    return SqlRepoBundle(
        session=session,
        users=UserRepository(session),
        sites=SiteRepository(session),
        histories=BuildHistoryRepository(session),
        env_variables=EnvVariableRepository(session),
        build_groups=BuildGroupRepository(session),
        parameters=ParameterRepository(session),
    )
