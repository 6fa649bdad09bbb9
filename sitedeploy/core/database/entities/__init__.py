"""
Database entity models.

This package contains all database entity models. Each module represents a
single database table and its related logic.

Modules:
- users: Users that trigger builds and receive notifications
- sites: Managed sites and their build bookkeeping
- build_histories: One row per build with status and output
- env_variables: Encrypted placeholder values for .env compilation
- build_groups: Named groups of sites built together
- parameters: Runtime key/value parameters
"""

from . import (
    build_groups,
    build_histories,
    env_variables,
    parameters,
    sites,
    users,
)
from .build_groups import BuildGroup, BuildGroupSite
from .build_histories import BuildHistory, BuildStatus, format_duration
from .env_variables import EnvVariable, EnvVariableScope
from .parameters import Parameter
from .sites import Site
from .users import User

__all__ = [
    "BuildGroup",
    "BuildGroupSite",
    "BuildHistory",
    "BuildStatus",
    "EnvVariable",
    "EnvVariableScope",
    "Parameter",
    "Site",
    "User",
    "build_groups",
    "build_histories",
    "env_variables",
    "format_duration",
    "parameters",
    "sites",
    "users",
]
