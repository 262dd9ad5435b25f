"""Capture module."""

from .frame_source import CaptureStats, FrameListSource, FrameSource
from .opencv_backend import OpenCVSource
from .simulated_camera import SimulatedSource

__all__ = ["CaptureStats", "FrameListSource", "FrameSource", "OpenCVSource", "SimulatedSource"]
