"""
Build completion events.

Jobs publish a ``SiteBuildCompleted`` event after every build, successful or
not. Listeners (notifications) are plain callables registered per event type.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, DefaultDict, List, Optional, Type, Union

from sitedeploy.core.database.entities.build_histories import BuildHistory
from sitedeploy.core.database.entities.sites import Site
from sitedeploy.core.database.entities.users import User

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Union[Awaitable[None], None]]


@dataclass(frozen=True)
class SiteBuildCompleted:
    """A build reached a terminal status."""

    history: BuildHistory
    site: Site
    status: str
    user: Optional[User] = None


class EventDispatcher:
    """Dispatch events to the listeners subscribed to their type."""

    def __init__(self) -> None:
        self._listeners: DefaultDict[Type[Any], List[Listener]] = defaultdict(list)

    def subscribe(self, event_type: Type[Any], listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def listeners(self, event_type: Type[Any]) -> List[Listener]:
        return list(self._listeners.get(event_type, []))

    async def dispatch(self, event: Any) -> None:
        """Run every listener of ``type(event)`` in subscription order.

        A failing listener is logged and does not stop the others.
        """
        for listener in self.listeners(type(event)):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Listener {getattr(listener, '__name__', type(listener).__name__)} failed: {e}",
                    exc_info=True,
                )
