"""Event system for pipeline observability."""

from app.events.error_bus import (
    ErrorCategory,
    ErrorEvent,
    ErrorEventBus,
    ErrorSeverity,
    get_error_bus,
    publish_error,
)
from app.events.event_bus import EventBus
from app.events.event_types import FrameDroppedEvent, VerdictEvent, ZoneCalibratedEvent

__all__ = [
    "ErrorCategory",
    "ErrorEvent",
    "ErrorEventBus",
    "ErrorSeverity",
    "EventBus",
    "FrameDroppedEvent",
    "VerdictEvent",
    "ZoneCalibratedEvent",
    "get_error_bus",
    "publish_error",
]
