"""Non-blocking announcement queue in front of a slow sink."""

from __future__ import annotations

import queue
import threading
import time
from typing import Callable, Optional

from app.events import ErrorCategory, ErrorEventBus, ErrorSeverity, publish_error
from contracts import Verdict
from log_config.logger import get_logger

from .sinks import AnnouncementSink

logger = get_logger(__name__)


class AnnouncementQueue(AnnouncementSink):
    """Delivers verdicts to ``sink`` on a worker thread.

    ``announce`` never blocks the caller:
    - INDETERMINATE verdicts are ignored
    - a verdict identical to the last accepted one within ``cooldown_ms``
      is coalesced into it
    - when ``maxsize`` announcements are already pending, the new one is dropped

    Sink failures are logged and published as ANNOUNCEMENT errors.
    """

    def __init__(
        self,
        sink: AnnouncementSink,
        maxsize: int = 4,
        cooldown_ms: float = 1500.0,
        clock: Callable[[], float] = time.monotonic,
        error_bus: Optional[ErrorEventBus] = None,
    ) -> None:
        self._sink = sink
        self._queue: queue.Queue[Verdict] = queue.Queue(maxsize=max(1, maxsize))
        self._cooldown_s = cooldown_ms / 1000.0
        self._clock = clock
        self._error_bus = error_bus

        self._lock = threading.Condition()
        self._pending = 0
        self._last_verdict: Optional[Verdict] = None
        self._last_accepted_at = 0.0

        self.accepted = 0
        self.coalesced = 0
        self.dropped = 0
        self.failed = 0

        self._running = True
        self._worker = threading.Thread(target=self._run, name="announcer", daemon=True)
        self._worker.start()

    def announce(self, verdict: Verdict) -> None:
        if not verdict.is_announceable:
            return
        if not self._running:
            logger.debug(f"Announcement queue closed, ignoring {verdict.value}")
            return

        with self._lock:
            now = self._clock()
            if (
                verdict == self._last_verdict
                and now - self._last_accepted_at < self._cooldown_s
            ):
                self.coalesced += 1
                return
            try:
                self._queue.put_nowait(verdict)
            except queue.Full:
                self.dropped += 1
                logger.warning(f"Announcement queue full, dropped {verdict.value} ({self.dropped} total)")
                return
            self._pending += 1
            self.accepted += 1
            self._last_verdict = verdict
            self._last_accepted_at = now

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until pending announcements are delivered or ``timeout`` elapses."""
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._lock:
            while self._pending > 0:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return False
                self._lock.wait(remaining)
        return True

    def close(self, timeout: float = 5.0) -> None:
        if not self._running:
            return
        if not self.flush(timeout):
            logger.warning(f"Closing announcement queue with {self._pending} announcements pending")
        self._running = False
        self._worker.join(timeout=1.0)
        self._sink.close()

    def _run(self) -> None:
        while self._running:
            try:
                verdict = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                self._sink.announce(verdict)
            except Exception as e:
                self.failed += 1
                publish_error(
                    category=ErrorCategory.ANNOUNCEMENT,
                    severity=ErrorSeverity.WARNING,
                    message=f"Announcement of {verdict.value} failed: {e}",
                    source="AnnouncementQueue",
                    exception=e,
                    bus=self._error_bus,
                )
            finally:
                with self._lock:
                    self._pending -= 1
                    self._lock.notify_all()
