"""
Environment Variable Endpoints.

Values are encrypted with ``APP_ENCRYPT_KEY`` before they are stored and are
masked in responses unless ``reveal=true`` is requested. They replace the
``###NAME`` placeholders when a site's ``.env`` file is compiled.
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from sitedeploy.build.errors import InvalidEnvScopeError, SiteNotFoundError
from sitedeploy.core.crypto import decrypt_value, encrypt_value
from sitedeploy.core.database.entities.env_variables import EnvVariable
from sitedeploy.core.logging_config import get_logger
from sitedeploy.server.core.config import settings
from sitedeploy.server.schemas import EnvVariableCreate, EnvVariablePage, EnvVariableRead, EnvVariableUpdate
from sitedeploy.server.services.deps import ReposDep

logger = get_logger(__name__)

router = APIRouter()

MASK = "********"


def _to_read(variable: EnvVariable, reveal: bool = False) -> EnvVariableRead:
    value = decrypt_value(variable.variable_value, settings.app_encrypt_key) if reveal else MASK
    return EnvVariableRead(
        id=variable.id,
        variable_name=variable.variable_name,
        variable_value=value,
        group_name=variable.group_name,
        my_site_id=variable.my_site_id,
        scope=variable.scope.value,
        created_at=variable.created_at,
        updated_at=variable.updated_at,
    )


async def _validate_scope(
    repos: ReposDep, name: str, group_name: Optional[str], site_id: Optional[int], exclude_id: Optional[int] = None
) -> None:
    if group_name and site_id is not None:
        raise InvalidEnvScopeError("A variable belongs to a build group or to a site, not both")
    if site_id is not None and await repos.sites.get_by_id(site_id) is None:
        raise SiteNotFoundError(site_id)
    if await repos.env_variables.find_duplicate(name, group_name, site_id, exclude_id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Variable '{name}' already exists in this scope",
        )


@router.post(
    "",
    response_model=EnvVariableRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Environment Variable",
    description="Store an encrypted variable, globally, for a build group or for a site.",
    responses={400: {"description": "Invalid scope"}, 409: {"description": "Duplicate variable in scope"}},
)
async def create_env_variable(variable_in: EnvVariableCreate, repos: ReposDep) -> EnvVariableRead:
    await _validate_scope(repos, variable_in.variable_name, variable_in.group_name, variable_in.my_site_id)
    variable = await repos.env_variables.create(
        EnvVariable(
            variable_name=variable_in.variable_name,
            variable_value=encrypt_value(variable_in.variable_value, settings.app_encrypt_key),
            group_name=variable_in.group_name,
            my_site_id=variable_in.my_site_id,
        )
    )
    logger.info(f"Environment variable {variable.variable_name} created ({variable.scope.value})")
    return _to_read(variable)


@router.get(
    "",
    response_model=EnvVariablePage,
    summary="List Environment Variables",
    description="List variables, optionally filtered by a case-insensitive name fragment.",
)
async def list_env_variables(
    repos: ReposDep,
    name: Optional[str] = Query(default=None, description="Name fragment to search for."),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    reveal: bool = Query(default=False, description="Return decrypted values."),
) -> EnvVariablePage:
    variables = await repos.env_variables.search(name, limit=limit, offset=offset)
    total = await repos.env_variables.count_matching(name)
    return EnvVariablePage(
        data=[_to_read(variable, reveal) for variable in variables],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{variable_id}",
    response_model=EnvVariableRead,
    summary="Get Environment Variable",
    responses={404: {"description": "Variable not found"}},
)
async def get_env_variable(variable_id: int, repos: ReposDep, reveal: bool = False) -> EnvVariableRead:
    variable = await repos.env_variables.get_by_id(variable_id)
    if variable is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Environment variable not found")
    return _to_read(variable, reveal)


@router.put(
    "/{variable_id}",
    response_model=EnvVariableRead,
    summary="Update Environment Variable",
    description="Update a variable. A new value is encrypted again; an omitted value is kept.",
    responses={404: {"description": "Variable not found"}, 409: {"description": "Duplicate variable in scope"}},
)
async def update_env_variable(
    variable_id: int, variable_in: EnvVariableUpdate, repos: ReposDep
) -> EnvVariableRead:
    variable = await repos.env_variables.get_by_id(variable_id)
    if variable is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Environment variable not found")

    changes = variable_in.model_dump(exclude_unset=True)
    name = changes.get("variable_name", variable.variable_name)
    group_name = changes.get("group_name", variable.group_name) or None
    site_id = changes.get("my_site_id", variable.my_site_id)
    await _validate_scope(repos, name, group_name, site_id, exclude_id=variable_id)

    variable.variable_name = name
    variable.group_name = group_name
    variable.my_site_id = site_id
    if changes.get("variable_value") is not None:
        variable.variable_value = encrypt_value(changes["variable_value"], settings.app_encrypt_key)

    variable = await repos.env_variables.update(variable)
    return _to_read(variable)


@router.delete(
    "/{variable_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Environment Variable",
    responses={404: {"description": "Variable not found"}},
)
async def delete_env_variable(variable_id: int, repos: ReposDep) -> None:
    if not await repos.env_variables.delete(variable_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Environment variable not found")
