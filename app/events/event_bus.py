"""Typed publish/subscribe for pipeline observers.

Handlers are keyed by the exact event class and run synchronously on the
publishing thread, so they should return quickly.
"""

from __future__ import annotations

import threading
import time
from collections import Counter, defaultdict
from typing import Any, Callable, DefaultDict, Dict, List, Type

from log_config.logger import get_logger

logger = get_logger(__name__)

Handler = Callable[[Any], None]


class EventBus:
    """Dispatch events to handlers registered for their class.

    Example:
        ```python
        bus = EventBus()
        bus.subscribe(VerdictEvent, lambda event: print(event.verdict))
        bus.publish(VerdictEvent(frame_index=3, verdict=Verdict.STRIKE, announced=True))
        ```
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: DefaultDict[Type, List[Handler]] = defaultdict(list)
        self._published: Counter = Counter()
        self._created = time.time()

    def subscribe(self, event_type: Type, handler: Handler) -> None:
        with self._lock:
            self._handlers[event_type].append(handler)
            count = len(self._handlers[event_type])
        logger.debug(f"{event_type.__name__}: {count} handler(s)")

    def unsubscribe(self, event_type: Type, handler: Handler) -> bool:
        """Remove ``handler``; False if it was not subscribed."""
        with self._lock:
            handlers = self._handlers.get(event_type)
            if not handlers or handler not in handlers:
                return False
            handlers.remove(handler)
            return True

    def publish(self, event: Any) -> None:
        """Deliver ``event``. A handler that raises is logged and skipped."""
        event_type = type(event)
        with self._lock:
            self._published[event_type.__name__] += 1
            handlers = tuple(self._handlers.get(event_type, ()))

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.opt(exception=e).error(f"{event_type.__name__} handler raised {type(e).__name__}: {e}")

    def get_subscriber_count(self, event_type: Type) -> int:
        with self._lock:
            return len(self._handlers.get(event_type, ()))

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            subscribed = {t: h for t, h in self._handlers.items() if h}
            return {
                "event_types": len(subscribed),
                "total_subscribers": sum(map(len, subscribed.values())),
                "event_counts": dict(self._published),
                "uptime_seconds": time.time() - self._created,
            }

    def __repr__(self) -> str:
        stats = self.get_stats()
        return f"EventBus(event_types={stats['event_types']}, subscribers={stats['total_subscribers']})"
