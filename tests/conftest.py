"""Shared fixtures for the umpire test suite."""

from __future__ import annotations

import numpy as np
import pytest

from contracts import Frame


@pytest.fixture
def make_frame():
    """Factory for small BGR frames with sequential indices."""

    def _make(frame_index: int = 1, width: int = 64, height: int = 48, image=None) -> Frame:
        if image is None:
            image = np.zeros((height, width, 3), dtype=np.uint8)
        return Frame(
            camera_id="test",
            frame_index=frame_index,
            t_capture_monotonic_ns=frame_index * 8_333_333,
            image=image,
            width=width,
            height=height,
            pixfmt="BGR",
        )

    return _make


@pytest.fixture
def frames(make_frame):
    """Factory for ``count`` frames numbered from 1."""

    def _frames(count: int):
        return [make_frame(frame_index=i) for i in range(1, count + 1)]

    return _frames
