"""Preallocated per-engine working buffers."""
from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from .errors import FrameShapeError


@dataclass
class FrameBuffers:
    """Arena sized once by ``init``; never resized while streaming."""

    width: int
    height: int
    hsv: np.ndarray = field(repr=False)
    mask: np.ndarray = field(repr=False)
    gray: np.ndarray = field(repr=False)
    prev_gray: np.ndarray = field(repr=False)
    gray_ready: bool = False
    has_previous: bool = False

    @classmethod
    def allocate(cls, width: int, height: int) -> "FrameBuffers":
        if width <= 0 or height <= 0:
            raise ValueError(f"Frame dimensions must be positive, got {width}x{height}")
        return cls(
            width=int(width),
            height=int(height),
            hsv=np.zeros((height, width, 3), dtype=np.uint8),
            mask=np.zeros((height, width), dtype=np.uint8),
            gray=np.zeros((height, width), dtype=np.uint8),
            prev_gray=np.zeros((height, width), dtype=np.uint8),
        )

    def check_frame(self, frame: np.ndarray) -> None:
        shape = getattr(frame, "shape", None)
        if shape is None or len(shape) < 2 or tuple(shape[:2]) != (self.height, self.width):
            raise FrameShapeError(
                f"Expected a {self.width}x{self.height} frame, got shape {shape}; re-run init() to change resolution"
            )

    def rotate_gray(self) -> None:
        """Keep the current grayscale frame as the previous one."""

        if self.gray_ready:
            np.copyto(self.prev_gray, self.gray)
            self.has_previous = True

    def invalidate_gray(self) -> None:
        self.gray_ready = False
        self.has_previous = False

    def contains(self, x: float, y: float) -> bool:
        return 0.0 <= x < self.width and 0.0 <= y < self.height


__all__ = ["FrameBuffers"]
