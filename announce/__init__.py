"""Verdict announcement sinks."""

from typing import Optional

from configs.settings import AnnouncerConfig
from app.events import ErrorEventBus

from .announcement_queue import AnnouncementQueue
from .sinks import (
    AnnouncementSink,
    CommandSpeechEngine,
    LogAnnouncer,
    NullAnnouncer,
    RecordingAnnouncer,
    SpeechAnnouncer,
    SpeechEngine,
)


def build_announcer(
    config: AnnouncerConfig,
    error_bus: Optional[ErrorEventBus] = None,
) -> AnnouncementQueue:
    """Create the configured sink behind a non-blocking AnnouncementQueue.

    Raises:
        AnnouncementError: If speech is requested and no speech command exists
        ValueError: If the announcer type is unknown
    """
    if config.type == "speech":
        engine = CommandSpeechEngine(
            command=config.command,
            language=config.language,
            voice=config.voice,
        )
        sink: AnnouncementSink = SpeechAnnouncer(engine)
    elif config.type == "log":
        sink = LogAnnouncer()
    elif config.type == "none":
        sink = NullAnnouncer()
    else:
        raise ValueError(f"Unknown announcer type: {config.type}")
    return AnnouncementQueue(
        sink,
        maxsize=config.queue_depth,
        cooldown_ms=config.cooldown_ms,
        error_bus=error_bus,
    )


__all__ = [
    "AnnouncementQueue",
    "AnnouncementSink",
    "CommandSpeechEngine",
    "LogAnnouncer",
    "NullAnnouncer",
    "RecordingAnnouncer",
    "SpeechAnnouncer",
    "SpeechEngine",
    "build_announcer",
]
