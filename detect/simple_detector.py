"""Simple detector implementations for simulated pipeline runs and tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Sequence, Union

from contracts import BoundingBox, Frame

from .detector import Detector

ScriptStep = Union[Sequence[BoundingBox], Exception]


class StaticDetector(Detector):
    """Reports the same boxes for every frame."""

    name = "static"

    def __init__(self, boxes: Optional[Sequence[BoundingBox]] = None) -> None:
        self.boxes = list(boxes or [])
        self.calls = 0

    def detect(self, frame: Frame) -> List[BoundingBox]:
        self.calls += 1
        return list(self.boxes)


class ScriptedDetector(Detector):
    """Replays a script of per-call results.

    Each step is a list of boxes or an exception to raise. ``by_frame`` maps
    frame indices to steps instead; frames missing from the map detect
    nothing. After the script runs out, ``default`` is returned.
    """

    name = "scripted"

    def __init__(
        self,
        script: Optional[Sequence[ScriptStep]] = None,
        by_frame: Optional[Dict[int, ScriptStep]] = None,
        default: Optional[Sequence[BoundingBox]] = None,
        on_detect: Optional[Callable[[Frame], None]] = None,
    ) -> None:
        self._script = list(script or [])
        self._by_frame = dict(by_frame or {})
        self._default = list(default or [])
        self._on_detect = on_detect
        self.calls = 0
        self.frames_seen: List[int] = []

    def detect(self, frame: Frame) -> List[BoundingBox]:
        self.calls += 1
        self.frames_seen.append(frame.frame_index)
        if self._on_detect is not None:
            self._on_detect(frame)

        if self._by_frame:
            step: ScriptStep = self._by_frame.get(frame.frame_index, [])
        elif self._script:
            step = self._script.pop(0)
        else:
            step = self._default

        if isinstance(step, Exception):
            raise step
        return list(step)
