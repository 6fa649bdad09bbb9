"""
Site Management Endpoints.

This module handles registering sites, triggering their builds and reading
back build state, histories and log files.
"""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from sitedeploy.core.logging_config import get_logger
from sitedeploy.server.schemas import (
    BuildHistoryRead,
    BuildQueued,
    BuildStatusRead,
    BuildTrigger,
    LogContent,
    LogFileContent,
    LogFileEntry,
    SiteCreate,
    SiteDeleted,
    SiteDetails,
    SiteRead,
    SiteUpdate,
)
from sitedeploy.server.services.deps import SiteBuildServiceDep

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=SiteRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create Site",
    description="Register a site, generate its build script and write its initial log file.",
    response_description="The created site.",
    responses={409: {"description": "A site with the same name already exists"}},
)
async def create_site(site_in: SiteCreate, service: SiteBuildServiceDep) -> SiteRead:
    """
    Create a new site.

    - **site_name**: Unique name, also the folder name in the site storage.
    - **path_source_code**: Absolute path of the source checkout.
    - **include_pm2**: Restart the site with PM2 at the end of the build script.
    - **port_pm2**: Port of the PM2 process.
    """
    site = await service.create_site(
        site_name=site_in.site_name,
        path_source_code=site_in.path_source_code,
        include_pm2=site_in.include_pm2,
        port_pm2=site_in.port_pm2,
        user_id=site_in.user_id,
    )
    return SiteRead.model_validate(site)


@router.get(
    "",
    response_model=List[SiteRead],
    summary="List Sites",
    description="List all registered sites ordered by id.",
)
async def list_sites(
    service: SiteBuildServiceDep,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    offset: Optional[int] = Query(default=None, ge=0),
) -> List[SiteRead]:
    sites = await service.list_sites(limit=limit, offset=offset)
    return [SiteRead.model_validate(site) for site in sites]


@router.get(
    "/{site_id}",
    response_model=SiteDetails,
    summary="Get Site Details",
    description="Retrieve a site with its build script, its current .env file and its last builder.",
    responses={404: {"description": "Site not found"}},
)
async def get_site(site_id: int, service: SiteBuildServiceDep) -> SiteDetails:
    return SiteDetails(**await service.get_site_details(site_id))


@router.patch(
    "/{site_id}",
    response_model=SiteRead,
    summary="Update Site",
    description="Update the editable fields of a site. Renaming moves its storage folder.",
    responses={404: {"description": "Site not found"}, 409: {"description": "Site name already taken"}},
)
async def update_site(site_id: int, site_in: SiteUpdate, service: SiteBuildServiceDep) -> SiteRead:
    site = await service.update_site(site_id, site_in.model_dump(exclude_unset=True))
    return SiteRead.model_validate(site)


@router.delete(
    "/{site_id}",
    response_model=SiteDeleted,
    summary="Delete Site",
    description=(
        "Delete a site. Its PM2 process, source folder and storage folder are removed in the background. "
        "The source path must live under the configured project root."
    ),
    responses={400: {"description": "Source path may not be removed"}, 404: {"description": "Site not found"}},
)
async def delete_site(site_id: int, service: SiteBuildServiceDep) -> SiteDeleted:
    messages = await service.delete_site(site_id)
    return SiteDeleted(success=True, messages=messages)


@router.post(
    "/{id_or_name}/build",
    response_model=BuildQueued,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger Build",
    description="Queue a build of the site. The site is looked up by id first, then by name.",
    response_description="The queued build.",
    responses={404: {"description": "Site not found"}},
)
async def trigger_build(
    id_or_name: str, service: SiteBuildServiceDep, trigger: Optional[BuildTrigger] = None
) -> BuildQueued:
    """
    Trigger a build.

    A ``queued`` build history is recorded immediately and the build runs on the
    background worker. Poll ``/build-status`` or ``/histories`` for the result.
    """
    site = await service.resolve_site(id_or_name)
    user_id = trigger.user_id if trigger is not None else None
    return BuildQueued(**await service.queue_build(site.id, user_id))


@router.get(
    "/{site_id}/build-status",
    response_model=BuildStatusRead,
    summary="Get Build Status",
    description="Status of the latest build of the site, or 'unknown' when it was never built.",
)
async def get_build_status(site_id: int, service: SiteBuildServiceDep) -> BuildStatusRead:
    return BuildStatusRead(**await service.get_build_status(site_id))


@router.get(
    "/{site_id}/histories",
    response_model=List[BuildHistoryRead],
    summary="List Build Histories",
    description="Build histories of the site, newest first.",
)
async def get_build_histories(site_id: int, service: SiteBuildServiceDep) -> List[BuildHistoryRead]:
    return [BuildHistoryRead(**row) for row in await service.get_build_histories(site_id)]


@router.get(
    "/{site_id}/log",
    response_model=LogContent,
    summary="Get Latest Log",
    description="Content of the latest build log of the site.",
)
async def get_log_content(site_id: int, service: SiteBuildServiceDep) -> LogContent:
    return LogContent(**await service.get_log_content(site_id))


@router.get(
    "/{site_id}/logs",
    response_model=List[LogFileEntry],
    summary="List Log Files",
    description="Log files of the site, newest first.",
)
async def list_site_logs(site_id: int, service: SiteBuildServiceDep) -> List[LogFileEntry]:
    return [LogFileEntry(**entry) for entry in await service.list_site_logs(site_id)]


@router.get(
    "/{site_id}/logs/view",
    response_model=LogFileContent,
    summary="View Log File",
    description="Content of one log file of the site. The path must live in the site's log folder.",
    responses={400: {"description": "Invalid log path"}, 404: {"description": "Log file not found"}},
)
async def view_log_file(
    service: SiteBuildServiceDep,
    site_id: int,
    log_path: str = Query(..., min_length=1, description="Storage-relative path, e.g. 'shop/log/shop_first.log'."),
) -> LogFileContent:
    return LogFileContent(**await service.view_log_file(site_id, log_path))


@router.post(
    "/{site_id}/regenerate-script",
    summary="Regenerate Build Script",
    description="Regenerate the build script of the site from the current parameters.",
)
async def regenerate_shell_script(site_id: int, service: SiteBuildServiceDep):
    await service.regenerate_shell_script(site_id)
    logger.info(f"Build script of site {site_id} regenerated through the API")
    return {"success": True}
