"""Tests for the pipeline run loop and threaded frame submission."""

from __future__ import annotations

import threading
import time

import pytest

from announce import AnnouncementQueue, RecordingAnnouncer
from app.events import EventBus, FrameDroppedEvent
from app.pipeline.frame_pipeline import FramePipeline, PipelineSettings
from app.pipeline.runner import (
    STOP_EXHAUSTED,
    STOP_MAX_FRAMES,
    STOP_REQUESTED,
    PipelineRunner,
)
from capture import FrameListSource
from capture.frame_source import FrameSource
from contracts import BoundingBox, Verdict
from detect import ScriptedDetector, StaticDetector
from exceptions import CameraConnectionError

BATTER = BoundingBox(0.4, 0.1, 0.2, 0.8)
BALL_IN = BoundingBox(0.45, 0.45, 0.05, 0.05)


class FlushCountingAnnouncer(RecordingAnnouncer):
    def __init__(self):
        super().__init__()
        self.flushes = 0

    def flush(self, timeout=None):
        self.flushes += 1
        return True


class FailingSource(FrameSource):
    def read_frame(self):
        raise CameraConnectionError("camera unplugged", camera_id="0")


def make_pipeline(announcer, person=None, every=3):
    return FramePipeline(
        person or StaticDetector([BATTER]),
        StaticDetector([BALL_IN]),
        announcer,
        settings=PipelineSettings(sample_every_n_frames=every),
    )


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_run_until_source_exhausted(frames):
    announcer = FlushCountingAnnouncer()
    runner = PipelineRunner(make_pipeline(announcer), announcer=announcer)

    summary = runner.run(FrameListSource(frames(7)))

    assert summary.frames_processed == 7
    assert summary.stop_reason == STOP_EXHAUSTED
    assert summary.stats.strikes == 2
    assert announcer.verdicts == [Verdict.STRIKE, Verdict.STRIKE]
    assert announcer.flushes == 1


def test_summary_reports_queue_outcomes(frames):
    spoken = RecordingAnnouncer()
    queue = AnnouncementQueue(spoken, cooldown_ms=60_000)
    try:
        runner = PipelineRunner(make_pipeline(queue), announcer=queue)
        summary = runner.run(FrameListSource(frames(6)))
    finally:
        queue.close()

    assert summary.stats.announcements == 2
    assert summary.announcements_coalesced == 1
    assert summary.announcements_dropped == 0
    assert spoken.verdicts == [Verdict.STRIKE]


def test_summary_without_queue_reports_no_queue_outcomes(frames):
    summary = PipelineRunner(make_pipeline(RecordingAnnouncer())).run(FrameListSource(frames(3)))
    assert summary.announcements_coalesced == 0
    assert summary.announcements_failed == 0


def test_run_honours_max_frames(frames):
    announcer = RecordingAnnouncer()
    source = FrameListSource(frames(10))
    summary = PipelineRunner(make_pipeline(announcer)).run(source, max_frames=4)

    assert summary.frames_processed == 4
    assert summary.stop_reason == STOP_MAX_FRAMES
    assert source.remaining == 6


def test_stop_takes_effect_at_frame_boundary(frames):
    results = []

    def stop_after_second(result):
        results.append(result)
        if len(results) == 2:
            runner.stop()

    runner = PipelineRunner(make_pipeline(RecordingAnnouncer(), every=1), on_result=stop_after_second)
    summary = runner.run(FrameListSource(frames(5)))

    assert summary.stop_reason == STOP_REQUESTED
    assert summary.frames_processed == 2
    assert [r.frame_index for r in results] == [1, 2]


def test_announcer_flushed_when_source_fails():
    announcer = FlushCountingAnnouncer()
    runner = PipelineRunner(make_pipeline(announcer), announcer=announcer)

    with pytest.raises(CameraConnectionError):
        runner.run(FailingSource())
    assert announcer.flushes == 1


def test_submit_keeps_only_newest_pending_frame(make_frame):
    entered = threading.Event()
    release = threading.Event()

    def block_first(frame):
        if frame.frame_index == 1:
            entered.set()
            release.wait(timeout=5.0)

    person = ScriptedDetector(default=[BATTER], on_detect=block_first)
    event_bus = EventBus()
    dropped_events = []
    event_bus.subscribe(FrameDroppedEvent, dropped_events.append)
    runner = PipelineRunner(
        make_pipeline(RecordingAnnouncer(), person=person, every=1),
        event_bus=event_bus,
    )

    runner.start()
    try:
        assert runner.submit(make_frame(frame_index=1))
        assert entered.wait(timeout=5.0)
        assert runner.submit(make_frame(frame_index=2))
        assert not runner.submit(make_frame(frame_index=3))
        assert not runner.submit(make_frame(frame_index=4))
        release.set()
        assert wait_for(lambda: runner.frames_processed == 2)
    finally:
        release.set()
        summary = runner.shutdown(timeout=5.0)

    assert person.frames_seen == [1, 4]
    assert summary.frames_dropped == 2
    assert [(e.frame_index, e.total_dropped) for e in dropped_events] == [(2, 1), (3, 2)]


def test_threaded_run_reads_source_to_exhaustion(frames):
    announcer = FlushCountingAnnouncer()
    runner = PipelineRunner(make_pipeline(announcer, every=1), announcer=announcer)

    runner.start(FrameListSource(frames(5)))
    summary = runner.join(timeout=5.0)

    assert summary is not None
    assert summary.stop_reason == STOP_EXHAUSTED
    assert summary.frames_processed + summary.frames_dropped == 5
    assert summary.frames_processed >= 1
    assert announcer.flushes == 1
    assert not runner.is_running()


def test_shutdown_stops_idle_worker():
    runner = PipelineRunner(make_pipeline(RecordingAnnouncer()))
    runner.start()
    assert runner.is_running()

    summary = runner.shutdown(timeout=5.0)

    assert summary.stop_reason == STOP_REQUESTED
    assert summary.frames_processed == 0
    assert not runner.is_running()


def test_start_twice_rejected():
    runner = PipelineRunner(make_pipeline(RecordingAnnouncer()))
    runner.start()
    try:
        with pytest.raises(RuntimeError):
            runner.start()
    finally:
        runner.shutdown(timeout=5.0)
