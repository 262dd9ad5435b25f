"""Per-frame strike/ball pipeline.

Every Nth frame is sampled: the person detector refreshes the strike zone and
the ball detector feeds the judge. Unsampled frames only advance the counter
(or repeat the last call when configured to). The current zone survives
frames where no batter is found, so one calibration serves many pitches.
"""

from __future__ import annotations

import functools
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, List, Optional

from announce.sinks import AnnouncementSink
from app.events import (
    ErrorCategory,
    ErrorEventBus,
    ErrorSeverity,
    EventBus,
    VerdictEvent,
    ZoneCalibratedEvent,
    publish_error,
)
from app.pipeline.selection import (
    BallSelectionPolicy,
    UnsampledFramePolicy,
    select_ball,
    select_batter,
)
from configs.settings import AppConfig
from contracts import BoundingBox, Frame, FrameResult, StrikeZone, Verdict
from detect.detector import Detector
from exceptions import CalibrationError, DetectionError
from log_config.logger import get_logger, log_performance
from metrics import ContainmentMode, StrikeJudge, ZoneCalibrator

logger = get_logger(__name__)


class PipelinePhase(Enum):
    UNCALIBRATED = "uncalibrated"  # No zone yet, every verdict is INDETERMINATE
    CALIBRATED = "calibrated"


@dataclass(frozen=True)
class PipelineSettings:
    sample_every_n_frames: int = 3
    unsampled_frame_policy: UnsampledFramePolicy = UnsampledFramePolicy.SKIP
    ball_selection_policy: BallSelectionPolicy = BallSelectionPolicy.HIGHEST_CONFIDENCE
    detection_budget_ms: float = 100.0

    def __post_init__(self) -> None:
        if self.sample_every_n_frames < 1:
            raise ValueError(
                f"sample_every_n_frames must be >= 1, got {self.sample_every_n_frames}"
            )
        object.__setattr__(self, "unsampled_frame_policy", UnsampledFramePolicy(self.unsampled_frame_policy))
        object.__setattr__(self, "ball_selection_policy", BallSelectionPolicy(self.ball_selection_policy))


@dataclass
class PipelineState:
    current_zone: Optional[StrikeZone] = None
    frame_counter: int = 0
    last_verdict: Optional[Verdict] = None

    @property
    def phase(self) -> PipelinePhase:
        if self.current_zone is None:
            return PipelinePhase.UNCALIBRATED
        return PipelinePhase.CALIBRATED


@dataclass
class PipelineStats:
    frames: int = 0
    sampled_frames: int = 0
    strikes: int = 0
    balls: int = 0
    indeterminate: int = 0
    announcements: int = 0  # handed to the announcer, not necessarily spoken
    zone_updates: int = 0
    person_detection_errors: int = 0
    ball_detection_errors: int = 0
    calibration_errors: int = 0
    announcement_errors: int = 0


class FramePipeline:
    """Turns frames into strike/ball calls.

    ``process_frame`` is serialized by an internal lock, so frames are
    processed strictly in arrival order even when submitted from several
    threads. Events and error reports for a frame are delivered after the
    lock is released, so subscribers may read pipeline state. Detector and calibration failures never escape: they are
    logged, counted and published on the error bus, and the frame is judged
    with whatever state survived.
    """

    def __init__(
        self,
        person_detector: Detector,
        ball_detector: Detector,
        announcer: AnnouncementSink,
        calibrator: Optional[ZoneCalibrator] = None,
        judge: Optional[StrikeJudge] = None,
        settings: Optional[PipelineSettings] = None,
        event_bus: Optional[EventBus] = None,
        error_bus: Optional[ErrorEventBus] = None,
    ) -> None:
        self._person_detector = person_detector
        self._ball_detector = ball_detector
        self._announcer = announcer
        self._calibrator = calibrator or ZoneCalibrator()
        self._judge = judge or StrikeJudge()
        self._settings = settings or PipelineSettings()
        self._event_bus = event_bus
        self._error_bus = error_bus

        self._lock = threading.Lock()
        self._state = PipelineState()
        self._stats = PipelineStats()
        # Deliveries queued under the lock, run once it is released
        self._outbox: List[Callable[[], None]] = []

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        person_detector: Detector,
        ball_detector: Detector,
        announcer: AnnouncementSink,
        event_bus: Optional[EventBus] = None,
        error_bus: Optional[ErrorEventBus] = None,
    ) -> "FramePipeline":
        settings = PipelineSettings(
            sample_every_n_frames=config.pipeline.sample_every_n_frames,
            unsampled_frame_policy=UnsampledFramePolicy(config.pipeline.unsampled_frame_policy),
            ball_selection_policy=BallSelectionPolicy(config.pipeline.ball_selection_policy),
            detection_budget_ms=config.pipeline.detection_budget_ms,
        )
        calibrator = ZoneCalibrator(
            zone_width=config.strike_zone.zone_width,
            knee_ratio=config.strike_zone.knee_ratio,
            shoulder_ratio=config.strike_zone.shoulder_ratio,
        )
        judge = StrikeJudge(containment_mode=ContainmentMode(config.judge.containment_mode))
        return cls(
            person_detector,
            ball_detector,
            announcer,
            calibrator=calibrator,
            judge=judge,
            settings=settings,
            event_bus=event_bus,
            error_bus=error_bus,
        )

    @property
    def settings(self) -> PipelineSettings:
        return self._settings

    @property
    def state(self) -> PipelineState:
        """Snapshot of the mutable pipeline state."""
        with self._lock:
            return replace(self._state)

    @property
    def phase(self) -> PipelinePhase:
        return self.state.phase

    @property
    def current_zone(self) -> Optional[StrikeZone]:
        return self.state.current_zone

    def stats(self) -> PipelineStats:
        with self._lock:
            return replace(self._stats)

    def reset(self) -> None:
        """Forget the zone, the frame counter and detector history."""
        with self._lock:
            self._state = PipelineState()
            self._stats = PipelineStats()
            self._person_detector.reset()
            self._ball_detector.reset()
        logger.info("Pipeline state reset")

    def process_frame(self, frame: Frame) -> FrameResult:
        with self._lock:
            try:
                result = self._process_locked(frame)
            finally:
                outbox, self._outbox = self._outbox, []
        for deliver in outbox:
            deliver()
        return result

    def _process_locked(self, frame: Frame) -> FrameResult:
        state = self._state
        state.frame_counter += 1
        self._stats.frames += 1

        if state.frame_counter % self._settings.sample_every_n_frames != 0:
            return self._unsampled(frame)

        self._stats.sampled_frames += 1
        errors: List[str] = []

        persons = self._run_detector(self._person_detector, frame, "person", errors)
        batter = select_batter(persons) if persons else None
        if batter is not None:
            self._update_zone(batter, frame, errors)

        balls = self._run_detector(self._ball_detector, frame, "ball", errors)
        ball = (
            select_ball(balls, self._settings.ball_selection_policy, state.current_zone)
            if balls
            else None
        )

        verdict = self._judge.judge(state.current_zone, ball)
        state.last_verdict = verdict
        self._count_verdict(verdict)
        announced = self._announce(verdict, frame.frame_index)

        if verdict.is_announceable:
            logger.debug(f"Frame {frame.frame_index}: {verdict.value}")
        self._publish(VerdictEvent(
            frame_index=frame.frame_index,
            verdict=verdict,
            announced=announced,
            ball_box=ball,
        ))

        return FrameResult(
            frame_index=frame.frame_index,
            sequence=state.frame_counter,
            sampled=True,
            zone=state.current_zone,
            batter_box=batter,
            ball_box=ball,
            verdict=verdict,
            announced=announced,
            errors=tuple(errors),
        )

    def _unsampled(self, frame: Frame) -> FrameResult:
        state = self._state
        verdict: Optional[Verdict] = None
        announced = False
        if (
            self._settings.unsampled_frame_policy == UnsampledFramePolicy.REPEAT_LAST
            and state.last_verdict is not None
        ):
            verdict = state.last_verdict
            announced = self._announce(verdict, frame.frame_index)
            self._publish(VerdictEvent(
                frame_index=frame.frame_index,
                verdict=verdict,
                announced=announced,
                repeated=True,
            ))
        return FrameResult(
            frame_index=frame.frame_index,
            sequence=state.frame_counter,
            sampled=False,
            zone=state.current_zone,
            verdict=verdict,
            announced=announced,
        )

    def _run_detector(
        self,
        detector: Detector,
        frame: Frame,
        role: str,
        errors: List[str],
    ) -> Optional[List[BoundingBox]]:
        """Run one detector; a failure yields None and is recorded, never raised."""
        start = time.perf_counter()
        try:
            boxes = list(detector.detect(frame))
        except Exception as e:
            if role == "person":
                self._stats.person_detection_errors += 1
            else:
                self._stats.ball_detection_errors += 1
            message = f"{role} detector {detector.name} failed on frame {frame.frame_index}: {e}"
            errors.append(message)
            if isinstance(e, DetectionError):
                logger.warning(message)
            else:
                logger.opt(exception=e).error(message)
            self._report_error(
                category=ErrorCategory.DETECTION,
                severity=ErrorSeverity.WARNING,
                message=message,
                source=f"FramePipeline.{role}_detector",
                exception=e,
                frame_index=frame.frame_index,
            )
            return None
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log_performance(
                f"{role} detection ({detector.name})",
                duration_ms,
                threshold_ms=self._settings.detection_budget_ms,
            )
        return boxes

    def _update_zone(self, batter: BoundingBox, frame: Frame, errors: List[str]) -> None:
        previous = self._state.current_zone
        try:
            zone = self._calibrator.calibrate(batter, frame_index=frame.frame_index)
        except CalibrationError as e:
            self._stats.calibration_errors += 1
            message = f"Calibration failed on frame {frame.frame_index}, keeping previous zone: {e}"
            errors.append(message)
            logger.warning(message)
            self._report_error(
                category=ErrorCategory.CALIBRATION,
                severity=ErrorSeverity.WARNING,
                message=message,
                source="FramePipeline.calibrate",
                exception=e,
                frame_index=frame.frame_index,
            )
            return

        self._state.current_zone = zone
        self._stats.zone_updates += 1
        if previous is None:
            logger.info(
                f"Strike zone calibrated on frame {frame.frame_index}: "
                f"x={zone.x:.3f} y={zone.y:.3f} w={zone.width:.3f} h={zone.height:.3f}"
            )
        self._publish(ZoneCalibratedEvent(zone=zone, batter_box=batter, previous_zone=previous))

    def _announce(self, verdict: Verdict, frame_index: int) -> bool:
        if not verdict.is_announceable:
            return False
        try:
            self._announcer.announce(verdict)
        except Exception as e:
            self._stats.announcement_errors += 1
            message = f"Announcer rejected {verdict.value} for frame {frame_index}: {e}"
            logger.warning(message)
            self._report_error(
                category=ErrorCategory.ANNOUNCEMENT,
                severity=ErrorSeverity.WARNING,
                message=message,
                source="FramePipeline.announce",
                exception=e,
                frame_index=frame_index,
            )
            return False
        self._stats.announcements += 1
        return True

    def _count_verdict(self, verdict: Verdict) -> None:
        if verdict == Verdict.STRIKE:
            self._stats.strikes += 1
        elif verdict == Verdict.BALL:
            self._stats.balls += 1
        else:
            self._stats.indeterminate += 1

    def _publish(self, event: Any) -> None:
        if self._event_bus is not None:
            self._outbox.append(functools.partial(self._event_bus.publish, event))

    def _report_error(self, **kwargs: Any) -> None:
        self._outbox.append(functools.partial(publish_error, bus=self._error_bus, **kwargs))
