"""
In-process event bus for gamification notifications.

Listeners are plain callables keyed by event type. The engine publishes only
after the unit of work that produced an event has committed.
"""

import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Union

from nightowl.core.constants import EventType
from nightowl.schemas.event import GamificationEvent

logger = logging.getLogger(__name__)

Listener = Callable[[GamificationEvent], None]


class EventBus:
    def __init__(self):
        self._event_handlers: Dict[EventType, List[Listener]] = defaultdict(list)

    def on(self, event_type: Union[EventType, str], listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unregisters it."""
        event_type = EventType(event_type)
        self._event_handlers[event_type].append(listener)
        return lambda: self.off(event_type, listener)

    def off(self, event_type: Union[EventType, str], listener: Listener) -> bool:
        handlers = self._event_handlers.get(EventType(event_type), [])
        if listener in handlers:
            handlers.remove(listener)
            return True
        return False

    def emit(self, event: GamificationEvent) -> None:
        """
        Deliver an event to every listener of its type.

        A listener that raises is logged and skipped; the remaining listeners
        still run.
        """
        for listener in list(self._event_handlers.get(event.type, [])):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    f"Listener {getattr(listener, '__name__', listener)!r} failed "
                    f"on {event.type.value}: {str(e)}",
                    exc_info=True,
                )

    def listener_count(self, event_type: Optional[Union[EventType, str]] = None) -> int:
        if event_type is not None:
            return len(self._event_handlers.get(EventType(event_type), []))
        return sum(len(handlers) for handlers in self._event_handlers.values())

    def clear(self) -> None:
        self._event_handlers.clear()
