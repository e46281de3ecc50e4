"""Generate a tiny synthetic laser-pointer clip for trying out ``lasertrack``."""
from __future__ import annotations

import math
from pathlib import Path

import cv2
import numpy as np


def main(output: Path = Path("sample_laser.avi"), duration: int = 6, fps: int = 30) -> None:
    width, height = 640, 360
    writer = cv2.VideoWriter(str(output), cv2.VideoWriter_fourcc(*"MJPG"), float(fps), (width, height))
    if not writer.isOpened():
        raise RuntimeError(f"Unable to open video writer for {output}")
    try:
        for idx in range(duration * fps):
            t = idx / fps
            frame = np.full((height, width, 3), 40, dtype=np.uint8)
            # Two strokes: a circle, a half-second pause, then a zig-zag.
            if t < 2.5:
                cx = width / 2 + 120 * math.cos(2 * math.pi * t / 2.5)
                cy = height / 2 + 120 * math.sin(2 * math.pi * t / 2.5)
            elif t < 3.0:
                cx = cy = None
            else:
                u = t - 3.0
                cx = 80 + 160 * u
                cy = height / 2 + 80 * (1 if int(u * 4) % 2 == 0 else -1) * (u * 4 % 1)
            if cx is not None:
                cv2.circle(frame, (int(cx), int(cy)), 6, (0, 255, 0), thickness=-1)
            writer.write(frame)
    finally:
        writer.release()
    print(f"Wrote {output}")


if __name__ == "__main__":
    main()
