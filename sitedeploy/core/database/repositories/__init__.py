"""
Repository layer for sitedeploy.

One repository per table, all built on SQLModel's ``AsyncSession``.
"""

from .base import BaseRepository, QueryBuilder, SQLModelRepository
from .build_groups import BuildGroupRepository
from .build_histories import BuildHistoryRepository
from .bundle import SqlRepoBundle, build_sql_repos_from_session
from .env_variables import EnvVariableRepository
from .parameters import ParameterRepository
from .sites import SiteRepository
from .users import UserRepository

__all__ = [
    "BaseRepository",
    "BuildGroupRepository",
    "BuildHistoryRepository",
    "EnvVariableRepository",
    "ParameterRepository",
    "QueryBuilder",
    "SQLModelRepository",
    "SiteRepository",
    "SqlRepoBundle",
    "UserRepository",
    "build_sql_repos_from_session",
]
