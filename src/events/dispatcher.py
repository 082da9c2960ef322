"""
In-process fan-out of recorded events to projection handlers.

Handlers run after the event row is committed. A failing handler is
logged and skipped; it never fails the write or blocks other handlers.
"""

from typing import List, Optional, Protocol

from core.logging import get_logger
from events.models import InteractionEvent

logger = get_logger(__name__)


class EventHandler(Protocol):
    """A projection reacting to recorded events."""

    def handles(self, event: InteractionEvent) -> bool:
        ...

    def handle(self, event: InteractionEvent) -> None:
        ...


class EventDispatcher:
    def __init__(self, handlers: Optional[List[EventHandler]] = None):
        self._handlers: List[EventHandler] = list(handlers or [])

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    @property
    def handlers(self) -> List[EventHandler]:
        return list(self._handlers)

    def publish(self, event: InteractionEvent) -> List[str]:
        """
        Deliver an event to every interested handler.

        Returns:
            Names of handlers that failed.
        """
        failed: List[str] = []
        for handler in self._handlers:
            name = type(handler).__name__
            if not handler.handles(event):
                continue
            try:
                handler.handle(event)
            except Exception as e:
                failed.append(name)
                logger.warning(
                    "Event handler failed",
                    handler=name,
                    event_id=event.id,
                    action=event.action,
                    error=str(e),
                )
        return failed
