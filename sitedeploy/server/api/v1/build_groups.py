"""
Build Group Endpoints.

A build group is a named set of sites built together. Its name is also the
prefix of group-scoped ``.env`` placeholders (``###<group>###NAME``).
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, status

from sitedeploy.build.errors import SiteNotFoundError
from sitedeploy.core.database.entities.build_groups import BuildGroup
from sitedeploy.core.logging_config import get_logger
from sitedeploy.server.schemas import (
    BuildGroupCreate,
    BuildGroupRead,
    BuildGroupUpdate,
    BuildTrigger,
    GroupBuildQueued,
)
from sitedeploy.server.services.deps import ReposDep, SiteBuildServiceDep

logger = get_logger(__name__)

router = APIRouter()


async def _to_read(repos: ReposDep, group: BuildGroup) -> BuildGroupRead:
    return BuildGroupRead(
        id=group.id,
        name=group.name,
        description=group.description,
        user_id=group.user_id,
        site_ids=await repos.build_groups.site_ids(group.id),
        created_at=group.created_at,
        updated_at=group.updated_at,
    )


async def _ensure_sites_exist(repos: ReposDep, site_ids: List[int]) -> None:
    found = {site.id for site in await repos.sites.list_by_ids(site_ids)}
    missing = [site_id for site_id in site_ids if site_id not in found]
    if missing:
        raise SiteNotFoundError(", ".join(str(site_id) for site_id in missing))


async def _get_group(repos: ReposDep, group_id: int) -> BuildGroup:
    group = await repos.build_groups.get_by_id(group_id)
    if group is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Build group not found")
    return group


@router.post(
    "",
    response_model=BuildGroupRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Build Group",
    responses={404: {"description": "Unknown site id"}, 409: {"description": "Group name already taken"}},
)
async def create_build_group(group_in: BuildGroupCreate, repos: ReposDep) -> BuildGroupRead:
    if await repos.build_groups.get_by_name(group_in.name) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Build group already exists: {group_in.name}")
    await _ensure_sites_exist(repos, group_in.site_ids)

    group = await repos.build_groups.create(
        BuildGroup(name=group_in.name, description=group_in.description, user_id=group_in.user_id)
    )
    if group_in.site_ids:
        await repos.build_groups.sync_sites(group.id, group_in.site_ids)
    logger.info(f"Build group {group.name} created with {len(group_in.site_ids)} sites")
    return await _to_read(repos, group)


@router.get("", response_model=List[BuildGroupRead], summary="List Build Groups")
async def list_build_groups(
    repos: ReposDep, limit: Optional[int] = None, offset: Optional[int] = None
) -> List[BuildGroupRead]:
    groups = await repos.build_groups.list(limit=limit, offset=offset)
    return [await _to_read(repos, group) for group in groups]


@router.get(
    "/{group_id}",
    response_model=BuildGroupRead,
    summary="Get Build Group",
    responses={404: {"description": "Build group not found"}},
)
async def get_build_group(group_id: int, repos: ReposDep) -> BuildGroupRead:
    return await _to_read(repos, await _get_group(repos, group_id))


@router.put(
    "/{group_id}",
    response_model=BuildGroupRead,
    summary="Update Build Group",
    description="Update a build group. When `site_ids` is given it replaces the sites of the group.",
)
async def update_build_group(group_id: int, group_in: BuildGroupUpdate, repos: ReposDep) -> BuildGroupRead:
    group = await _get_group(repos, group_id)
    if group_in.site_ids is not None:
        await _ensure_sites_exist(repos, group_in.site_ids)

    if group_in.name is not None and group_in.name != group.name:
        if await repos.build_groups.get_by_name(group_in.name) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=f"Build group already exists: {group_in.name}"
            )
        group.name = group_in.name
    if group_in.description is not None:
        group.description = group_in.description

    group = await repos.build_groups.update(group)
    if group_in.site_ids is not None:
        await repos.build_groups.sync_sites(group.id, group_in.site_ids)
    return await _to_read(repos, group)


@router.delete(
    "/{group_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Build Group",
    responses={404: {"description": "Build group not found"}},
)
async def delete_build_group(group_id: int, repos: ReposDep) -> None:
    if not await repos.build_groups.delete(group_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Build group not found")


@router.post(
    "/{group_id}/build",
    response_model=GroupBuildQueued,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Build Group",
    description="Queue a build for every site of the group.",
    responses={400: {"description": "Group has no sites"}, 404: {"description": "Build group not found"}},
)
async def build_group(
    group_id: int, service: SiteBuildServiceDep, trigger: Optional[BuildTrigger] = None
) -> GroupBuildQueued:
    user_id = trigger.user_id if trigger is not None else None
    return GroupBuildQueued(**await service.queue_group_build(group_id, user_id))
