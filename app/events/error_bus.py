"""Centralized error event bus for recoverable pipeline errors.

Components that recover from an error locally (a failed detector call, a
rejected calibration) report it here so that it stays observable without
interrupting the pipeline.
"""

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional

from log_config.logger import get_logger

logger = get_logger(__name__)


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"  # Operation continues
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def log_level(self) -> str:
        return self.name


class ErrorCategory(Enum):
    CAMERA = "camera"
    DETECTION = "detection"
    CALIBRATION = "calibration"
    ANNOUNCEMENT = "announcement"
    PIPELINE = "pipeline"
    CONFIG = "config"


ErrorCallback = Callable[["ErrorEvent"], None]


@dataclass
class ErrorEvent:
    """A recovered error and where it happened."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    source: str
    timestamp: float = field(default_factory=time.time)
    exception: Optional[Exception] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        text = f"[{self.severity.log_level}] {self.category.value}/{self.source}: {self.message}"
        if self.exception is not None:
            text += f" ({type(self.exception).__name__})"
        return text


class ErrorEventBus:
    """Publish-subscribe bus for error events.

    Subscribers register for one category or, with ``category=None``, for
    every error. The most recent ``max_history`` events are kept; per-category
    counts cover every event since the last ``clear_history``.
    """

    def __init__(self, max_history: int = 100):
        self._lock = threading.Lock()
        # Key None holds subscribers to every category
        self._subscribers: Dict[Optional[ErrorCategory], List[ErrorCallback]] = {}
        self._history: Deque[ErrorEvent] = deque(maxlen=max_history)
        self._counts: Counter = Counter()

    def subscribe(self, callback: ErrorCallback, category: Optional[ErrorCategory] = None) -> None:
        with self._lock:
            self._subscribers.setdefault(category, []).append(callback)
        logger.debug(
            f"Subscribed {getattr(callback, '__name__', repr(callback))} "
            f"to {category.value if category else 'all'} errors"
        )

    def unsubscribe(self, callback: ErrorCallback, category: Optional[ErrorCategory] = None) -> None:
        with self._lock:
            callbacks = self._subscribers.get(category, [])
            if callback in callbacks:
                callbacks.remove(callback)

    def publish(self, event: ErrorEvent) -> None:
        """Record and log ``event``, then notify subscribers outside the lock.

        A subscriber that raises is logged and skipped.
        """
        with self._lock:
            self._history.append(event)
            self._counts[event.category] += 1
            callbacks = list(self._subscribers.get(event.category, []))
            callbacks += self._subscribers.get(None, [])

        logger.log(event.severity.log_level, str(event))

        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                name = getattr(callback, "__name__", repr(callback))
                logger.opt(exception=e).error(f"Error subscriber {name} failed: {e}")

    def get_history(self, category: Optional[ErrorCategory] = None, limit: int = 100) -> List[ErrorEvent]:
        with self._lock:
            history = list(self._history)
        if category is not None:
            history = [event for event in history if event.category == category]
        return history[-limit:]

    def get_error_counts(self) -> Dict[ErrorCategory, int]:
        with self._lock:
            return dict(self._counts)

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()
            self._counts.clear()


_error_bus: Optional[ErrorEventBus] = None
_bus_lock = threading.Lock()


def get_error_bus() -> ErrorEventBus:
    """Return the process-wide error bus."""
    global _error_bus
    with _bus_lock:
        if _error_bus is None:
            _error_bus = ErrorEventBus()
        return _error_bus


def publish_error(
    category: ErrorCategory,
    severity: ErrorSeverity,
    message: str,
    source: str,
    exception: Optional[Exception] = None,
    bus: Optional[ErrorEventBus] = None,
    **metadata: Any,
) -> None:
    """Publish an error event to ``bus``, or to the process-wide bus."""
    (bus or get_error_bus()).publish(
        ErrorEvent(
            category=category,
            severity=severity,
            message=message,
            source=source,
            exception=exception,
            metadata=metadata,
        )
    )


__all__ = [
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorEvent",
    "ErrorEventBus",
    "get_error_bus",
    "publish_error",
]
