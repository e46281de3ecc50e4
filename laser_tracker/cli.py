"""Console entry point for the laser tracker."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from loguru import logger
from tqdm import tqdm

from .config import AppConfig, load_config
from .engine import LaserTracker
from .io import track_video, video_frame_count
from .presets import COLOR_PRESETS, DEFAULT_PRESET


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level)


def _load_config(path: Path) -> AppConfig:
    if not path.exists():
        logger.info("Using default configuration; no {} found", path)
    return load_config(path)


def cmd_track(config: AppConfig, args: argparse.Namespace) -> None:
    tracker = LaserTracker(config=config.tracker, tuning=config.tuning)
    if args.preset:
        tracker.apply_preset(args.preset)
    if args.no_kalman:
        tracker.set_params({"use_kalman": False})
    if args.no_flow:
        tracker.set_params({"use_optical_flow": False})
    if args.camshift:
        tracker.set_params({"use_camshift": True})

    video_path = Path(args.video)
    out_csv = Path(args.out) if args.out else video_path.with_suffix(".laser.csv")
    total = video_frame_count(video_path)
    frames = 0
    tracked = 0
    strokes = 0
    failures = 0
    try:
        with tqdm(total=total or None, desc="track", unit="frame", leave=False) as bar:
            for result in track_video(video_path, tracker, out_csv):
                frames += 1
                if result is None:
                    failures += 1
                else:
                    tracked += int(result.is_tracking)
                    strokes += int(result.is_new_stroke)
                bar.update(1)
    finally:
        tracker.dispose()
    logger.info(
        "Tracked {} of {} frames in {} strokes ({} failed); wrote {}",
        tracked,
        frames,
        strokes,
        failures,
        out_csv.as_posix(),
    )


def cmd_presets(config: AppConfig, args: argparse.Namespace) -> None:
    for name, preset in COLOR_PRESETS.items():
        marker = "*" if name == DEFAULT_PRESET else " "
        print(
            f"{marker} {name:<14} hue {preset.hue_min}-{preset.hue_max}  "
            f"sat {preset.sat_min}-{preset.sat_max}  val {preset.val_min}-{preset.val_max}"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lasertrack", description="Track a laser pointer dot in video")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML configuration file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    track_p = sub.add_parser("track", help="Track the dot through a video and write a CSV")
    track_p.add_argument("video")
    track_p.add_argument("--out", help="CSV path (default: <video>.laser.csv)")
    track_p.add_argument("--preset", choices=sorted(COLOR_PRESETS))
    track_p.add_argument("--no-kalman", action="store_true")
    track_p.add_argument("--no-flow", action="store_true")
    track_p.add_argument("--camshift", action="store_true")
    track_p.set_defaults(func=cmd_track)

    presets_p = sub.add_parser("presets", help="List the colour presets")
    presets_p.set_defaults(func=cmd_presets)

    return parser


def main(argv: List[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    config = _load_config(Path(args.config))
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(config, args)


if __name__ == "__main__":
    main()
