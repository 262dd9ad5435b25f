"""Simulated frame source for pipeline testing and demos."""

from __future__ import annotations

import time
from typing import Optional

import numpy as np

from contracts import Frame
from exceptions import NoFrameSourceError

from .frame_source import CaptureStats, FrameCounter, FrameSource

BACKGROUND_BGR = (40, 30, 20)


class SimulatedSource(FrameSource):
    """Produces blank frames at a target rate.

    ``fps=0`` disables pacing. ``max_frames`` ends the stream, which is how
    tests and demos exercise source exhaustion.
    """

    def __init__(
        self,
        width: int = 320,
        height: int = 240,
        fps: int = 0,
        pixfmt: str = "BGR",
        max_frames: Optional[int] = None,
        camera_id: str = "sim",
    ) -> None:
        self._width = width
        self._height = height
        self._fps = fps
        self._pixfmt = pixfmt
        self._max_frames = max_frames
        self._camera_id = camera_id
        self._counter = FrameCounter()
        self._next_due = time.monotonic()
        self._closed = False

    def read_frame(self) -> Frame:
        if self._closed:
            raise NoFrameSourceError("Simulated source is closed")
        if self._max_frames is not None and self._counter.frames >= self._max_frames:
            raise NoFrameSourceError(f"Simulated source exhausted after {self._counter.frames} frames")

        if self._fps > 0:
            delay = self._next_due - time.monotonic()
            if delay > 0:
                time.sleep(delay)
            self._next_due = max(self._next_due, time.monotonic()) + 1.0 / self._fps
        frame_index, captured_ns = self._counter.tick()

        if self._pixfmt == "GRAY8":
            image = np.zeros((self._height, self._width), dtype=np.uint8)
        else:
            image = np.empty((self._height, self._width, 3), dtype=np.uint8)
            image[:] = BACKGROUND_BGR

        return Frame(
            camera_id=self._camera_id,
            frame_index=frame_index,
            t_capture_monotonic_ns=captured_ns,
            image=image,
            width=self._width,
            height=self._height,
            pixfmt=self._pixfmt,
        )

    def get_stats(self) -> CaptureStats:
        return self._counter.snapshot()

    def close(self) -> None:
        self._closed = True
