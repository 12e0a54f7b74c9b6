from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List

logger = logging.getLogger(__name__)

EventHandler = Callable[[str, Dict[str, Any]], Awaitable[None]]

WILDCARD = "*"


class EventBusService:
    """
    Simple in-process pub-sub bus for domain events.

    Handlers subscribe to an event name (or "*" for every event) and are awaited
    in subscription order. A failing handler is logged and skipped; delivery is
    best-effort and at most once.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}

    # PUBLIC_INTERFACE
    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Register a handler for an event name."""
        self._handlers.setdefault(event_name, []).append(handler)
        logger.info("Subscribed handler to event=%s; handlers=%d", event_name, len(self._handlers[event_name]))

    # PUBLIC_INTERFACE
    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        handlers = self._handlers.get(event_name)
        if handlers and handler in handlers:
            handlers.remove(handler)

    # PUBLIC_INTERFACE
    async def emit(self, event_name: str, payload: Dict[str, Any]) -> None:
        """Deliver an event to its handlers and to wildcard subscribers."""
        handlers = [*self._handlers.get(event_name, []), *self._handlers.get(WILDCARD, [])]
        logger.info("Emitting event=%s to %d handler(s)", event_name, len(handlers))
        for handler in handlers:
            try:
                await handler(event_name, payload)
            except Exception:
                logger.exception("Event handler failed for event=%s; dropping delivery", event_name)
