"""Tracking state and the per-frame result handed to consumers."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .kalman import KalmanState

# (x, y, width, height) in pixels
Window = Tuple[int, int, int, int]


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


ORIGIN = Point(0.0, 0.0)


@dataclass(frozen=True)
class Observation:
    """A candidate position for the estimator.

    ``raw`` is what the selector or optical flow produced, ``position`` is the
    value to fuse (equal to ``raw`` unless the refiner blended it).
    """

    raw: Point
    position: Point
    predicted: bool = False
    source: str = "color"


@dataclass
class TrackingState:
    is_tracking: bool = False
    current_position: Optional[Point] = None
    last_position: Optional[Point] = None
    predicted_position: Optional[Point] = None
    velocity: Point = ORIGIN
    frames_since_last_detection: int = 0
    is_new_stroke: bool = False
    source: Optional[str] = None
    kalman: Optional["KalmanState"] = None
    refiner_window: Optional[Window] = None
    refiner_histogram: Optional[np.ndarray] = field(default=None, repr=False)
    refiner_disabled: bool = False
    flow_disabled: bool = False

    def reset_refiner(self) -> None:
        self.refiner_window = None
        self.refiner_histogram = None
        self.refiner_disabled = False

    def restore(self, snapshot: "TrackingState") -> None:
        """Copy every field of ``snapshot`` back onto this instance."""

        for item in fields(self):
            setattr(self, item.name, getattr(snapshot, item.name))

    def end_stroke(self) -> None:
        """Drop everything tied to the stroke that was just lost."""

        self.is_tracking = False
        self.last_position = None
        self.predicted_position = None
        self.kalman = None
        self.flow_disabled = False
        self.reset_refiner()


@dataclass(frozen=True)
class TrackingResult:
    position: Optional[Point]
    normalized_position: Optional[Point]
    predicted_position: Optional[Point]
    velocity: Point
    is_tracking: bool
    is_new_stroke: bool
    frames_since_last_detection: int
    source: Optional[str]
    process_time_ms: float


__all__ = ["ORIGIN", "Observation", "Point", "TrackingResult", "TrackingState", "Window"]
