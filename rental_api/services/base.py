from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from rental_api.services.event_bus import EventBusService

logger = logging.getLogger(__name__)

_DEPTH_KEY = "rental_api.atomic_depth"
_EVENTS_KEY = "rental_api.staged_events"


class BaseService:
    """
    Base class for services. Holds a session for use across multiple repositories.

    Services should keep business logic and orchestration, delegating data access
    to repositories. Mutating operations run inside `atomic()`: phases nest on the
    session, only the outermost phase commits (or rolls back), and events staged
    with `stage_event` are published once that commit succeeded.
    """

    def __init__(self, session: AsyncSession, event_bus: Optional[EventBusService] = None) -> None:
        self.session = session
        self.event_bus = event_bus

    # PUBLIC_INTERFACE
    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[AsyncSession]:
        """
        Run the enclosed block as one unit of work.

        Nested phases join the outermost one. The outermost phase commits on
        success, rolls back and discards staged events on error.
        """
        info = self.session.info
        depth = info.get(_DEPTH_KEY, 0)
        info[_DEPTH_KEY] = depth + 1
        try:
            yield self.session
        except BaseException:
            info[_DEPTH_KEY] = depth
            if depth == 0:
                info.pop(_EVENTS_KEY, None)
                await self.session.rollback()
            raise

        info[_DEPTH_KEY] = depth
        if depth > 0:
            return
        try:
            await self.session.commit()
        except Exception:
            info.pop(_EVENTS_KEY, None)
            await self.session.rollback()
            raise
        await self._publish(info.pop(_EVENTS_KEY, []))

    # PUBLIC_INTERFACE
    def stage_event(self, event_name: str, payload: Dict[str, Any]) -> None:
        """Queue an event for publication after the outermost phase commits."""
        staged: List[Tuple[str, Dict[str, Any]]] = self.session.info.setdefault(_EVENTS_KEY, [])
        staged.append((event_name, payload))

    async def _publish(self, events: List[Tuple[str, Dict[str, Any]]]) -> None:
        if not events:
            return
        if self.event_bus is None:
            logger.debug("No event bus configured; dropping %d event(s)", len(events))
            return
        for event_name, payload in events:
            await self.event_bus.emit(event_name, payload)
