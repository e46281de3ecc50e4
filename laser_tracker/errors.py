"""Exception types raised by the tracking engine."""
from __future__ import annotations


class TrackerError(RuntimeError):
    pass


class InitializationError(TrackerError):
    """The vision backend is unavailable or the engine was never initialised."""


class FrameProcessingError(TrackerError):
    """A frame could not be pushed through the pipeline."""


class FrameShapeError(FrameProcessingError, ValueError):
    """The frame does not match the dimensions given to ``init``."""


class SubsystemDegradation(TrackerError):
    """Optical flow or region refinement failed and should stand down."""


class FilterError(TrackerError):
    """The Kalman filter produced a singular or non-finite update."""


__all__ = [
    "FilterError",
    "FrameProcessingError",
    "FrameShapeError",
    "InitializationError",
    "SubsystemDegradation",
    "TrackerError",
]
