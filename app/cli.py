"""Command line entry point for the homeplate umpire.

Examples:
    homeplate-umpire run --source 0
    homeplate-umpire run --config configs/default.yaml --source pitch.mp4 --announcer log
    homeplate-umpire calibrate 0.4 0.1 0.2 0.8
    homeplate-umpire judge --zone 0.35 0.34 0.3 0.32 --ball 0.45 0.45 0.05 0.05
"""

from __future__ import annotations

import argparse
import json
import sys
from contextlib import ExitStack
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from announce import build_announcer
from app.events import EventBus, ZoneCalibratedEvent, get_error_bus
from app.pipeline.frame_pipeline import FramePipeline
from app.pipeline.runner import PipelineRunner
from capture import FrameSource, OpenCVSource, SimulatedSource
from configs.settings import AppConfig, default_config, load_config
from contracts import BoundingBox
from detect.factory import build_detector
from exceptions import UmpireError
from log_config.logger import configure_logging, get_logger
from metrics import ContainmentMode, StrikeJudge, ZoneCalibrator
from metrics.strike_zone import DEFAULT_KNEE_RATIO, DEFAULT_SHOULDER_RATIO, DEFAULT_ZONE_WIDTH

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

SIMULATED_SOURCE = "sim"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="homeplate-umpire",
        description="Call strikes and balls from a single behind-the-plate camera.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the pipeline on a camera or video file.")
    run.add_argument("--config", type=Path, default=None, help="YAML config (defaults built in).")
    run.add_argument(
        "--source",
        default=None,
        help=f"Camera index, video file, or '{SIMULATED_SOURCE}'. Overrides camera.source.",
    )
    run.add_argument("--max-frames", type=int, default=None)
    run.add_argument("--announcer", choices=("speech", "log", "none"), default=None)
    run.add_argument("--log-level", default=None, help="Console log level, e.g. DEBUG.")

    calibrate = sub.add_parser("calibrate", help="Print the strike zone for a batter box.")
    calibrate.add_argument("box", nargs=4, type=float, metavar=("X", "Y", "W", "H"))
    calibrate.add_argument("--zone-width", type=float, default=DEFAULT_ZONE_WIDTH)
    calibrate.add_argument("--knee-ratio", type=float, default=DEFAULT_KNEE_RATIO)
    calibrate.add_argument("--shoulder-ratio", type=float, default=DEFAULT_SHOULDER_RATIO)

    judge = sub.add_parser("judge", help="Print the verdict for a ball box against a zone.")
    judge.add_argument("--zone", nargs=4, type=float, required=True, metavar=("X", "Y", "W", "H"))
    judge.add_argument("--ball", nargs=4, type=float, required=True, metavar=("X", "Y", "W", "H"))
    judge.add_argument(
        "--mode",
        choices=[mode.value for mode in ContainmentMode],
        default=ContainmentMode.FULLY_CONTAINED.value,
    )
    return parser


def _open_source(config: AppConfig, source: str) -> FrameSource:
    camera = config.camera
    if source == SIMULATED_SOURCE:
        return SimulatedSource(width=camera.width, height=camera.height, pixfmt=camera.pixfmt)
    return OpenCVSource(
        source,
        width=camera.width,
        height=camera.height,
        fps=camera.fps,
        pixfmt=camera.pixfmt,
        rotation=camera.rotation,
        open_timeout_s=camera.open_timeout_ms / 1000.0,
    )


def cmd_run(args: argparse.Namespace) -> int:
    config = load_config(args.config) if args.config is not None else default_config()
    configure_logging(args.log_level or config.logging.level, config.logging.dir)
    if args.announcer is not None:
        config = replace(config, announcer=replace(config.announcer, type=args.announcer))

    error_bus = get_error_bus()
    event_bus = EventBus()
    event_bus.subscribe(
        ZoneCalibratedEvent,
        lambda event: logger.debug(f"Zone updated from batter at x={event.batter_box.x:.3f}"),
    )

    with ExitStack() as resources:
        # Closed in reverse: the announcer drains before the detectors go
        person_detector = build_detector(config.detector.person, "person")
        resources.callback(person_detector.close)
        ball_detector = build_detector(config.detector.ball, "ball")
        resources.callback(ball_detector.close)
        announcer = build_announcer(config.announcer, error_bus=error_bus)
        resources.callback(announcer.close)

        pipeline = FramePipeline.from_config(
            config,
            person_detector,
            ball_detector,
            announcer,
            event_bus=event_bus,
            error_bus=error_bus,
        )
        runner = PipelineRunner(pipeline, announcer=announcer, event_bus=event_bus)
        with _open_source(config, args.source or config.camera.source) as source:
            try:
                summary = runner.run(source, max_frames=args.max_frames)
            except KeyboardInterrupt:
                logger.info("Interrupted, stopping")
                return EXIT_OK

    stats = summary.stats
    print(
        f"{summary.frames_processed} frames ({summary.stop_reason}): "
        f"{stats.strikes} strikes, {stats.balls} balls, {stats.indeterminate} indeterminate"
    )
    if summary.announcements_coalesced or summary.announcements_dropped or summary.announcements_failed:
        print(
            f"announcer: {summary.announcements_coalesced} merged, "
            f"{summary.announcements_dropped} dropped, {summary.announcements_failed} failed"
        )
    return EXIT_OK


def cmd_calibrate(args: argparse.Namespace) -> int:
    calibrator = ZoneCalibrator(
        zone_width=args.zone_width,
        knee_ratio=args.knee_ratio,
        shoulder_ratio=args.shoulder_ratio,
    )
    zone = calibrator.calibrate(BoundingBox(*args.box))
    print(json.dumps({"x": zone.x, "y": zone.y, "width": zone.width, "height": zone.height}))
    return EXIT_OK


def cmd_judge(args: argparse.Namespace) -> int:
    verdict = StrikeJudge(containment_mode=ContainmentMode(args.mode)).judge(
        BoundingBox(*args.zone),
        BoundingBox(*args.ball),
    )
    print(verdict.value)
    return EXIT_OK


_COMMANDS = {
    "run": cmd_run,
    "calibrate": cmd_calibrate,
    "judge": cmd_judge,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_USAGE

    try:
        return _COMMANDS[args.command](args)
    except (UmpireError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
