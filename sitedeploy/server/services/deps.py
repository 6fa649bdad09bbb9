"""
API Dependencies.

Provides the process-wide build collaborators (parameter store, site storage,
event dispatcher, build queue) and the request-scoped repository bundle and
``SiteBuildService`` for API endpoints.
"""

from typing import Annotated, Optional

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from sitedeploy.build.events import EventDispatcher, SiteBuildCompleted
from sitedeploy.build.jobs import BuildContext
from sitedeploy.build.notifications import EmailNotifier, SendBuildNotification, TelegramNotifier
from sitedeploy.build.parameters import ParameterStore
from sitedeploy.build.queue import BuildQueue
from sitedeploy.build.service import SiteBuildService
from sitedeploy.build.storage import SiteStorage
from sitedeploy.core.database import async_session_maker, get_session
from sitedeploy.core.database.repositories import SqlRepoBundle, build_sql_repos_from_session
from sitedeploy.server.core.config import settings

_parameters: Optional[ParameterStore] = None
_storage: Optional[SiteStorage] = None
_dispatcher: Optional[EventDispatcher] = None
_queue: Optional[BuildQueue] = None


def get_parameter_store() -> ParameterStore:
    global _parameters
    if _parameters is None:
        _parameters = ParameterStore(async_session_maker)
    return _parameters


def get_site_storage() -> SiteStorage:
    global _storage
    if _storage is None:
        _storage = SiteStorage(settings.build.storage_root)
    return _storage


def get_event_dispatcher() -> EventDispatcher:
    """Dispatcher with the build notification listener subscribed."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EventDispatcher()
        _dispatcher.subscribe(
            SiteBuildCompleted,
            SendBuildNotification(
                get_parameter_store(),
                email=EmailNotifier(settings.smtp),
                telegram=get_telegram_notifier(),
            ),
        )
    return _dispatcher


def get_telegram_notifier() -> TelegramNotifier:
    return TelegramNotifier(settings.telegram)


def get_build_queue() -> BuildQueue:
    global _queue
    if _queue is None:
        _queue = BuildQueue(
            BuildContext(
                session_factory=async_session_maker,
                storage=get_site_storage(),
                parameters=get_parameter_store(),
                dispatcher=get_event_dispatcher(),
                shell=settings.build.shell,
                encrypt_key=settings.app_encrypt_key,
            )
        )
    return _queue


SessionDep = Annotated[AsyncSession, Depends(get_session)]
ParameterStoreDep = Annotated[ParameterStore, Depends(get_parameter_store)]
SiteStorageDep = Annotated[SiteStorage, Depends(get_site_storage)]
BuildQueueDep = Annotated[BuildQueue, Depends(get_build_queue)]
TelegramNotifierDep = Annotated[TelegramNotifier, Depends(get_telegram_notifier)]


def get_repos(session: SessionDep) -> SqlRepoBundle:
    return build_sql_repos_from_session(session=session)


ReposDep = Annotated[SqlRepoBundle, Depends(get_repos)]


def get_site_build_service(
    repos: ReposDep,
    storage: SiteStorageDep,
    parameters: ParameterStoreDep,
    queue: BuildQueueDep,
) -> SiteBuildService:
    return SiteBuildService(repos, storage, parameters, queue)


SiteBuildServiceDep = Annotated[SiteBuildService, Depends(get_site_build_service)]
