"""Frame source abstraction for capture backends."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from contracts import Frame
from exceptions import NoFrameSourceError


@dataclass(frozen=True)
class CaptureStats:
    frames: int
    dropped_frames: int
    fps_avg: float


class FrameCounter:
    """Numbers captured frames and keeps a running mean of the capture rate."""

    def __init__(self) -> None:
        self.frames = 0
        self.dropped = 0
        self._intervals_s = 0.0
        self._last_ns: Optional[int] = None

    def tick(self) -> Tuple[int, int]:
        """Count one frame; return its 1-based index and monotonic capture time."""
        now_ns = time.monotonic_ns()
        if self._last_ns is not None:
            self._intervals_s += (now_ns - self._last_ns) / 1e9
        self._last_ns = now_ns
        self.frames += 1
        return self.frames, now_ns

    @property
    def fps_avg(self) -> float:
        if self.frames < 2 or self._intervals_s <= 0:
            return 0.0
        return (self.frames - 1) / self._intervals_s

    def snapshot(self) -> CaptureStats:
        return CaptureStats(frames=self.frames, dropped_frames=self.dropped, fps_avg=self.fps_avg)


class FrameSource(ABC):
    """Supplies frames in capture order.

    Frames carry increasing ``frame_index`` values. ``read_frame`` raises
    ``NoFrameSourceError`` once the source is exhausted or disconnected.
    """

    @abstractmethod
    def read_frame(self) -> Frame:
        """Return the next frame."""

    def get_stats(self) -> CaptureStats:
        return CaptureStats(frames=0, dropped_frames=0, fps_avg=0.0)

    def close(self) -> None:
        """Release the source."""
        return None

    def frames(self) -> Iterator[Frame]:
        """Iterate until the source is exhausted."""
        while True:
            try:
                yield self.read_frame()
            except NoFrameSourceError:
                return

    def __enter__(self) -> "FrameSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FrameListSource(FrameSource):
    """Replays an in-memory sequence of frames."""

    def __init__(self, frames: Iterable[Frame]) -> None:
        self._frames: List[Frame] = list(frames)
        self._position = 0
        self._closed = False

    def read_frame(self) -> Frame:
        if self._closed:
            raise NoFrameSourceError("Frame source is closed")
        if self._position >= len(self._frames):
            raise NoFrameSourceError(f"Frame source exhausted after {self._position} frames")
        frame = self._frames[self._position]
        self._position += 1
        return frame

    def get_stats(self) -> CaptureStats:
        return CaptureStats(frames=self._position, dropped_frames=0, fps_avg=0.0)

    def close(self) -> None:
        self._closed = True

    @property
    def remaining(self) -> int:
        return len(self._frames) - self._position
