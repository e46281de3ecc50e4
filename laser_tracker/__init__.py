"""Real-time laser pointer dot tracking."""

from .config import AppConfig, TrackerConfig, TuningConfig, load_config
from .engine import LaserTracker
from .errors import (
    FilterError,
    FrameProcessingError,
    FrameShapeError,
    InitializationError,
    SubsystemDegradation,
    TrackerError,
)
from .presets import COLOR_PRESETS, preset_patch
from .state import Point, TrackingResult

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "COLOR_PRESETS",
    "FilterError",
    "FrameProcessingError",
    "FrameShapeError",
    "InitializationError",
    "LaserTracker",
    "Point",
    "SubsystemDegradation",
    "TrackerError",
    "TrackingResult",
    "TrackerConfig",
    "TuningConfig",
    "load_config",
    "preset_patch",
]
