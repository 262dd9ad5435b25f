"""OpenCV-based frame source for cameras and video files."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import cv2

from contracts import Frame
from exceptions import CameraConnectionError, NoFrameSourceError
from log_config.logger import get_logger

from .frame_source import CaptureStats, FrameCounter, FrameSource
from .timeout_utils import RetryPolicy, retry_on_failure, run_with_timeout

logger = get_logger(__name__)

ROTATIONS = {
    "none": None,
    "cw90": cv2.ROTATE_90_CLOCKWISE,
    "ccw90": cv2.ROTATE_90_COUNTERCLOCKWISE,
    "180": cv2.ROTATE_180,
}


class OpenCVSource(FrameSource):
    """Reads frames from a camera index (``"0"``) or a video file path.

    Video files end with ``NoFrameSourceError`` on the first failed read.
    Cameras tolerate up to ``max_read_failures`` consecutive failed reads
    before they are treated as disconnected.
    """

    def __init__(
        self,
        source: str,
        width: int = 1280,
        height: int = 720,
        fps: int = 120,
        pixfmt: str = "BGR",
        rotation: str = "none",
        open_timeout_s: float = 5.0,
        max_read_failures: int = 30,
    ) -> None:
        if rotation not in ROTATIONS:
            raise ValueError(f"Unknown rotation {rotation!r}, expected one of {sorted(ROTATIONS)}")
        self._source = str(source)
        self._is_camera = self._source.isdigit()
        self._width = width
        self._height = height
        self._fps = fps
        self._pixfmt = pixfmt
        self._rotation = ROTATIONS[rotation]
        self._open_timeout_s = open_timeout_s
        self._max_read_failures = max_read_failures
        self._consecutive_failures = 0
        self._counter = FrameCounter()
        self._capture: Optional[cv2.VideoCapture] = None

    @property
    def camera_id(self) -> str:
        return self._source if self._is_camera else Path(self._source).name

    def open(self) -> None:
        """Open the camera or file and request the configured mode.

        A missing video file fails at once; a busy or flaky device is retried.

        Raises:
            CameraConnectionError: If the source cannot be opened
        """
        if self._capture is not None:
            return
        if not self._is_camera and not Path(self._source).is_file():
            raise CameraConnectionError(f"Video file not found: {self._source}", camera_id=self.camera_id)
        self._connect()

    @retry_on_failure(
        policy=RetryPolicy(
            max_attempts=3,
            base_delay=0.5,
            max_delay=2.0,
            retry_on=(CameraConnectionError,),
        )
    )
    def _connect(self) -> None:
        def _open_capture() -> cv2.VideoCapture:
            target = int(self._source) if self._is_camera else self._source
            capture = cv2.VideoCapture(target)
            if not capture.isOpened():
                capture.release()
                raise CameraConnectionError(
                    f"Failed to open {self._source} - device may be in use or not found",
                    camera_id=self.camera_id,
                )
            return capture

        logger.info(f"Opening frame source {self._source}")
        self._capture = run_with_timeout(
            _open_capture,
            timeout_seconds=self._open_timeout_s,
            error_message=f"Opening {self._source} timed out",
            camera_id=self.camera_id,
        )
        if self._is_camera:
            self._configure_camera()

    def _configure_camera(self) -> None:
        assert self._capture is not None
        logger.info(f"Camera {self._source}: requesting {self._width}x{self._height} @ {self._fps}fps")
        self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, self._width)
        self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self._height)
        self._capture.set(cv2.CAP_PROP_FPS, self._fps)

        # Drivers silently clamp unsupported modes
        actual_width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        actual_fps = int(self._capture.get(cv2.CAP_PROP_FPS))
        if actual_width != self._width or actual_height != self._height:
            logger.warning(
                f"Camera {self._source}: requested {self._width}x{self._height} "
                f"but got {actual_width}x{actual_height}"
            )
        if actual_fps != self._fps:
            logger.warning(f"Camera {self._source}: requested {self._fps}fps but got {actual_fps}fps")

    def read_frame(self) -> Frame:
        if self._capture is None:
            self.open()
        assert self._capture is not None

        while True:
            ok, image = self._capture.read()
            if ok and image is not None:
                self._consecutive_failures = 0
                break
            self._counter.dropped += 1
            if not self._is_camera:
                raise NoFrameSourceError(f"End of video {self._source} after {self._counter.frames} frames")
            self._consecutive_failures += 1
            if self._consecutive_failures >= self._max_read_failures:
                raise NoFrameSourceError(
                    f"Camera {self._source} disconnected after {self._consecutive_failures} failed reads"
                )

        if self._pixfmt == "GRAY8" and image.ndim == 3:
            image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        if self._rotation is not None:
            image = cv2.rotate(image, self._rotation)

        frame_index, captured_ns = self._counter.tick()
        return Frame(
            camera_id=self.camera_id,
            frame_index=frame_index,
            t_capture_monotonic_ns=captured_ns,
            image=image,
            width=image.shape[1],
            height=image.shape[0],
            pixfmt=self._pixfmt,
        )

    def get_stats(self) -> CaptureStats:
        return self._counter.snapshot()

    def close(self) -> None:
        """Release the capture. Safe to call more than once."""
        if self._capture is None:
            return
        logger.info(f"Closing frame source {self._source}")
        capture = self._capture
        self._capture = None
        run_with_timeout(
            capture.release,
            timeout_seconds=self._open_timeout_s,
            error_message=f"Releasing {self._source} timed out",
            camera_id=self.camera_id,
        )
