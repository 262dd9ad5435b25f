"""Drives a FramePipeline from a frame source.

Two modes are offered:

- ``run()`` pulls frames on the calling thread until the source is exhausted,
  ``max_frames`` is reached or ``stop()`` is called. Reading is synchronous, so
  a slow pipeline simply reads less often.
- ``start()`` runs the pipeline on a worker thread fed through ``submit()``.
  At most one frame waits behind the frame being processed; a newer frame
  replaces a waiting one so the pipeline stays on live video.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, replace
from typing import Callable, Optional

from announce.announcement_queue import AnnouncementQueue
from announce.sinks import AnnouncementSink
from app.events import (
    ErrorCategory,
    ErrorSeverity,
    EventBus,
    FrameDroppedEvent,
    publish_error,
)
from app.pipeline.frame_pipeline import FramePipeline, PipelineStats
from capture.frame_source import FrameSource
from contracts import Frame, FrameResult
from exceptions import NoFrameSourceError
from log_config.logger import get_logger

logger = get_logger(__name__)

STOP_EXHAUSTED = "exhausted"
STOP_REQUESTED = "stopped"
STOP_MAX_FRAMES = "max_frames"


@dataclass(frozen=True)
class RunSummary:
    """Outcome of a run.

    ``stats.announcements`` counts verdicts handed to the announcer. When that
    announcer is an ``AnnouncementQueue``, the verdicts it later merged into a
    repeat, dropped while full or failed to speak are reported here as well.
    """

    frames_processed: int
    frames_dropped: int
    stop_reason: str
    stats: PipelineStats
    announcements_coalesced: int = 0
    announcements_dropped: int = 0
    announcements_failed: int = 0


class PipelineRunner:
    """Owns the frame loop around a FramePipeline.

    The runner does not own the source; callers open and close it. The
    announcer, when given, is flushed before a run reports completion so that
    queued calls are spoken before the process exits.
    """

    def __init__(
        self,
        pipeline: FramePipeline,
        announcer: Optional[AnnouncementSink] = None,
        event_bus: Optional[EventBus] = None,
        on_result: Optional[Callable[[FrameResult], None]] = None,
        flush_timeout_s: float = 5.0,
    ) -> None:
        self._pipeline = pipeline
        self._announcer = announcer
        self._event_bus = event_bus
        self._on_result = on_result
        self._flush_timeout_s = flush_timeout_s

        self._stop_event = threading.Event()
        self._pending: queue.Queue = queue.Queue(maxsize=1)
        self._submit_lock = threading.Lock()
        self._counter_lock = threading.Lock()
        self._frames_processed = 0
        self._frames_dropped = 0
        self._stop_reason = STOP_REQUESTED

        self._worker: Optional[threading.Thread] = None
        self._reader: Optional[threading.Thread] = None
        self._source_done = threading.Event()

    @property
    def frames_processed(self) -> int:
        with self._counter_lock:
            return self._frames_processed

    @property
    def frames_dropped(self) -> int:
        with self._counter_lock:
            return self._frames_dropped

    def is_running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def run(self, source: FrameSource, max_frames: Optional[int] = None) -> RunSummary:
        """Process frames from ``source`` on the calling thread.

        Raises:
            CameraError: If the source fails in a way other than running out
                of frames; the announcer is still flushed
        """
        self._stop_event.clear()
        self._reset_counters()
        reason = STOP_REQUESTED
        logger.info(f"Pipeline run started (max_frames={max_frames})")
        try:
            while True:
                if self._stop_event.is_set():
                    reason = STOP_REQUESTED
                    break
                if max_frames is not None and self.frames_processed >= max_frames:
                    reason = STOP_MAX_FRAMES
                    break
                try:
                    frame = source.read_frame()
                except NoFrameSourceError as e:
                    logger.info(f"Frame source exhausted: {e}")
                    reason = STOP_EXHAUSTED
                    break
                self._process(frame)
        finally:
            self._flush_announcer()

        summary = self._summary(reason)
        logger.info(
            f"Pipeline run finished ({reason}): {summary.frames_processed} frames, "
            f"{summary.stats.strikes} strikes, {summary.stats.balls} balls"
        )
        return summary

    def stop(self) -> None:
        """Request a stop; the frame in progress completes first."""
        self._stop_event.set()

    def start(self, source: Optional[FrameSource] = None) -> None:
        """Start the worker thread, plus a reader thread when ``source`` is given."""
        if self.is_running():
            raise RuntimeError("Pipeline runner already started")
        self._stop_event.clear()
        self._source_done.clear()
        self._reset_counters()
        self._drain_pending()

        self._worker = threading.Thread(target=self._worker_loop, name="PipelineWorker", daemon=True)
        self._worker.start()
        if source is not None:
            self._reader = threading.Thread(
                target=self._reader_loop,
                args=(source,),
                name="FrameReader",
                daemon=True,
            )
            self._reader.start()
        logger.info("Pipeline runner started")

    def submit(self, frame: Frame) -> bool:
        """Offer a frame to the worker without blocking.

        Returns:
            False when a waiting frame was dropped to make room
        """
        with self._submit_lock:
            try:
                self._pending.put_nowait(frame)
                return True
            except queue.Full:
                pass
            try:
                dropped = self._pending.get_nowait()
            except queue.Empty:
                dropped = None
            self._pending.put_nowait(frame)

        if dropped is None:
            return True
        with self._counter_lock:
            self._frames_dropped += 1
            total = self._frames_dropped
        if total == 1 or total % 100 == 0:
            logger.warning(f"Pipeline behind, dropped {total} frames (latest {dropped.frame_index})")
        if self._event_bus is not None:
            self._event_bus.publish(FrameDroppedEvent(frame_index=dropped.frame_index, total_dropped=total))
        return False

    def join(self, timeout: Optional[float] = None) -> Optional[RunSummary]:
        """Wait for the worker to finish. Returns None if it is still running."""
        if self._reader is not None:
            self._reader.join(timeout=timeout)
        if self._worker is not None:
            self._worker.join(timeout=timeout)
            if self._worker.is_alive():
                logger.warning("Pipeline worker did not stop within timeout")
                return None
        self._reader = None
        self._worker = None
        return self._summary(self._stop_reason)

    def shutdown(self, timeout: float = 5.0) -> Optional[RunSummary]:
        self.stop()
        return self.join(timeout=timeout)

    def _worker_loop(self) -> None:
        reason = STOP_REQUESTED
        try:
            while not self._stop_event.is_set():
                try:
                    frame = self._pending.get(timeout=0.05)
                except queue.Empty:
                    # The reader stops submitting before it sets source_done
                    if self._source_done.is_set() and self._pending.empty():
                        reason = STOP_EXHAUSTED
                        break
                    continue
                self._process(frame)
        except Exception as e:
            logger.opt(exception=e).error(f"Pipeline worker crashed: {e}")
            publish_error(
                category=ErrorCategory.PIPELINE,
                severity=ErrorSeverity.CRITICAL,
                message=f"Pipeline worker crashed: {e}",
                source="PipelineRunner.worker",
                exception=e,
            )
            raise
        finally:
            self._stop_reason = reason
            self._flush_announcer()
            logger.info(f"Pipeline worker stopped ({reason})")

    def _reader_loop(self, source: FrameSource) -> None:
        try:
            while not self._stop_event.is_set():
                self.submit(source.read_frame())
        except NoFrameSourceError as e:
            logger.info(f"Frame source exhausted: {e}")
        except Exception as e:
            logger.opt(exception=e).error(f"Frame reader failed: {e}")
            publish_error(
                category=ErrorCategory.CAMERA,
                severity=ErrorSeverity.ERROR,
                message=f"Frame reader failed: {e}",
                source="PipelineRunner.reader",
                exception=e,
            )
        finally:
            self._source_done.set()

    def _process(self, frame: Frame) -> None:
        result = self._pipeline.process_frame(frame)
        with self._counter_lock:
            self._frames_processed += 1
        if self._on_result is not None:
            self._on_result(result)

    def _flush_announcer(self) -> None:
        if self._announcer is None:
            return
        if not self._announcer.flush(timeout=self._flush_timeout_s):
            logger.warning(f"Announcer still busy after {self._flush_timeout_s}s flush")

    def _drain_pending(self) -> None:
        while True:
            try:
                self._pending.get_nowait()
            except queue.Empty:
                return

    def _reset_counters(self) -> None:
        with self._counter_lock:
            self._frames_processed = 0
            self._frames_dropped = 0

    def _summary(self, reason: str) -> RunSummary:
        summary = RunSummary(
            frames_processed=self.frames_processed,
            frames_dropped=self.frames_dropped,
            stop_reason=reason,
            stats=self._pipeline.stats(),
        )
        if isinstance(self._announcer, AnnouncementQueue):
            summary = replace(
                summary,
                announcements_coalesced=self._announcer.coalesced,
                announcements_dropped=self._announcer.dropped,
                announcements_failed=self._announcer.failed,
            )
        return summary
