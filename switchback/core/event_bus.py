"""EventBus — synchronous pub/sub between the engine and its observers.

Events are published from both the key-event thread and the scheduler
thread, so the handler table is guarded by a lock.  Handlers run on the
publishing thread and must be quick.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import defaultdict
from typing import Any, Callable

from switchback.core.events import Event, EventType

logger = logging.getLogger(__name__)

Handler = Callable[[Event], None]


class EventBus:
    def __init__(self):
        self._handlers: dict[EventType, list[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: EventType, handler: Handler) -> None:
        with self._lock:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: Event) -> None:
        """Call every handler for ``event.type``; a failing handler is logged and skipped."""
        with self._lock:
            handlers = list(self._handlers.get(event.type, ()))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %r failed for %s", handler, event.type.name)

    def emit(self, event_type: EventType, data: Any = None) -> Event:
        """Build a timestamped event, publish it and return it."""
        event = Event(event_type, data, time.time())
        self.publish(event)
        return event
