"""Drive a :class:`LaserTracker` over a video file."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterator, Optional, Sequence

import cv2

from .engine import LaserTracker
from .state import TrackingResult

CSV_COLUMNS = ["frame", "x", "y", "nx", "ny", "tracking", "new_stroke", "source", "ms"]


def video_frame_count(video_path: Path | str) -> int:
    """Frame count reported by the container, or 0 when unknown."""

    cap = cv2.VideoCapture(str(video_path))
    try:
        if not cap.isOpened():
            return 0
        return max(int(cap.get(cv2.CAP_PROP_FRAME_COUNT)), 0)
    finally:
        cap.release()


def result_row(frame_idx: int, result: Optional[TrackingResult]) -> Sequence[object]:
    if result is None:
        return [frame_idx, "", "", "", "", "", "", "error", ""]
    position = result.position
    normalized = result.normalized_position
    return [
        frame_idx,
        "" if position is None else round(position.x, 3),
        "" if position is None else round(position.y, 3),
        "" if normalized is None else round(normalized.x, 5),
        "" if normalized is None else round(normalized.y, 5),
        int(result.is_tracking),
        int(result.is_new_stroke),
        result.source or "",
        round(result.process_time_ms, 3),
    ]


def track_video(
    video_path: Path | str, tracker: LaserTracker, out_csv: Optional[Path | str] = None
) -> Iterator[Optional[TrackingResult]]:
    """Yield one tracking result per decoded frame.

    The tracker is (re)initialised with the stream's frame size.  ``None`` is
    yielded for frames the tracker failed to process.
    """

    cap = cv2.VideoCapture(str(video_path))
    if not cap.isOpened():
        raise RuntimeError(f"Unable to open video for laser tracking: {video_path}")

    csv_file = None
    writer = None
    frame_idx = 0
    try:
        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        tracker.init(width, height)
        if out_csv is not None:
            out_csv = Path(out_csv)
            out_csv.parent.mkdir(parents=True, exist_ok=True)
            csv_file = out_csv.open("w", newline="", encoding="utf-8")
            writer = csv.writer(csv_file)
            writer.writerow(CSV_COLUMNS)
        while True:
            ok, frame = cap.read()
            if not ok:
                break
            result = tracker.process_frame(frame)
            if writer is not None:
                writer.writerow(result_row(frame_idx, result))
            yield result
            frame_idx += 1
    finally:
        cap.release()
        if csv_file is not None:
            csv_file.close()


__all__ = ["CSV_COLUMNS", "result_row", "track_video", "video_frame_count"]
