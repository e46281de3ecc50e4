"""Tests for laser_tracker.io and the lasertrack CLI."""
from __future__ import annotations

import csv
from pathlib import Path

import cv2
import pytest

from laser_tracker.cli import build_parser, main
from laser_tracker.engine import LaserTracker
from laser_tracker.io import CSV_COLUMNS, result_row, track_video, video_frame_count
from laser_tracker.state import Point, TrackingResult

from conftest import HEIGHT, WIDTH, make_frame


def _write_video(path: Path, xs) -> Path:
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (WIDTH, HEIGHT))
    if not writer.isOpened():
        pytest.skip("MJPG video writer unavailable")
    try:
        for x in xs:
            writer.write(make_frame(None if x is None else (x, 120), radius=8))
    finally:
        writer.release()
    return path


@pytest.fixture
def dot_video(tmp_path: Path) -> Path:
    return _write_video(tmp_path / "dot.avi", [60, 70, 80, 90, 100, None, None, 150])


# --- result_row ---------------------------------------------------------------------

class TestResultRow:
    def test_failed_frame(self):
        assert result_row(3, None) == [3, "", "", "", "", "", "", "error", ""]

    def test_tracked_frame(self):
        result = TrackingResult(
            position=Point(10.0, 20.0),
            normalized_position=Point(0.25, 0.5),
            predicted_position=None,
            velocity=Point(1.0, 0.0),
            is_tracking=True,
            is_new_stroke=False,
            frames_since_last_detection=0,
            source="color",
            process_time_ms=1.23456,
        )
        row = result_row(7, result)
        assert row == [7, 10.0, 20.0, 0.25, 0.5, 1, 0, "color", 1.235]
        assert len(row) == len(CSV_COLUMNS)


# --- track_video ----------------------------------------------------------------------

class TestTrackVideo:
    def test_missing_video(self, tmp_path):
        with pytest.raises(RuntimeError, match="Unable to open"):
            list(track_video(tmp_path / "missing.avi", LaserTracker()))

    def test_yields_per_frame_and_writes_csv(self, dot_video, tmp_path):
        out_csv = tmp_path / "out" / "track.csv"
        tracker = LaserTracker()
        results = list(track_video(dot_video, tracker, out_csv))
        assert len(results) == 8
        assert results[0].is_tracking and results[0].is_new_stroke
        assert results[4].position.x == pytest.approx(100.0, abs=10.0)
        assert results[5].is_tracking

        with out_csv.open(newline="", encoding="utf-8") as fh:
            rows = list(csv.reader(fh))
        assert rows[0] == CSV_COLUMNS
        assert len(rows) == 9
        assert rows[1][5] == "1" and rows[1][6] == "1"

    def test_frame_count(self, dot_video, tmp_path):
        assert video_frame_count(dot_video) == 8
        assert video_frame_count(tmp_path / "missing.avi") == 0


# --- CLI ------------------------------------------------------------------------------------

class TestCli:
    def test_parser_flags(self):
        args = build_parser().parse_args(["track", "clip.mp4", "--no-kalman", "--camshift", "--preset", "Red Laser"])
        assert args.video == "clip.mp4"
        assert args.no_kalman and args.camshift and not args.no_flow
        assert args.preset == "Red Laser"

    def test_unknown_preset_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["track", "clip.mp4", "--preset", "Purple"])

    def test_presets_command(self, capsys, tmp_path):
        main(["--config", str(tmp_path / "none.yaml"), "presets"])
        out = capsys.readouterr().out
        assert "* Green Laser" in out
        assert "White/Bright" in out

    def test_track_command(self, dot_video, tmp_path):
        out_csv = tmp_path / "cli.csv"
        main(["--config", str(tmp_path / "none.yaml"), "track", str(dot_video), "--out", str(out_csv), "--no-flow"])
        with out_csv.open(newline="", encoding="utf-8") as fh:
            rows = list(csv.DictReader(fh))
        assert len(rows) == 8
        assert rows[0]["new_stroke"] == "1"
        assert rows[5]["tracking"] == "1"
