"""
Runtime Parameter Endpoints.

Parameters steer the build pipeline at runtime (project root, enabled build
steps, PM2 log folder, ...). Writes go through the ``ParameterStore`` so its
cache is invalidated.
"""

from typing import List

from fastapi import APIRouter, HTTPException, status

from sitedeploy.server.schemas import ParameterRead, ParameterUpsert
from sitedeploy.server.services.deps import ParameterStoreDep, ReposDep

router = APIRouter()


@router.get("", response_model=List[ParameterRead], summary="List Parameters")
async def list_parameters(repos: ReposDep) -> List[ParameterRead]:
    return [ParameterRead.model_validate(parameter) for parameter in await repos.parameters.list()]


@router.get(
    "/{key}",
    response_model=ParameterRead,
    summary="Get Parameter",
    responses={404: {"description": "Parameter not found"}},
)
async def get_parameter(key: str, repos: ReposDep) -> ParameterRead:
    parameter = await repos.parameters.get_by_key(key)
    if parameter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Parameter not found: {key}")
    return ParameterRead.model_validate(parameter)


@router.put(
    "/{key}",
    response_model=ParameterRead,
    summary="Create or Update Parameter",
    description="Store a parameter under `key`, replacing its current value.",
)
async def upsert_parameter(key: str, parameter_in: ParameterUpsert, parameters: ParameterStoreDep) -> ParameterRead:
    parameter = await parameters.set_value(key, parameter_in.value, parameter_in.type, parameter_in.description)
    return ParameterRead.model_validate(parameter)


@router.delete(
    "/{key}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Parameter",
    responses={404: {"description": "Parameter not found"}},
)
async def delete_parameter(key: str, parameters: ParameterStoreDep) -> None:
    if not await parameters.delete(key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Parameter not found: {key}")
