"""Shared fixtures for the laser tracker test suite."""
from __future__ import annotations

from typing import Iterator, Optional, Tuple

import cv2
import numpy as np
import pytest

from laser_tracker.config import TrackerConfig, TuningConfig
from laser_tracker.engine import LaserTracker

WIDTH = 320
HEIGHT = 240
GREEN = (0, 255, 0)
# Same luma as pure green, but unsaturated: optical flow sees it, the colour mask does not.
GREY_TWIN = (150, 150, 150)


def make_frame(
    center: Optional[Tuple[int, int]] = None,
    radius: int = 6,
    color: Tuple[int, int, int] = GREEN,
    size: Tuple[int, int] = (WIDTH, HEIGHT),
) -> np.ndarray:
    """Black BGR frame with an optional filled disc."""
    width, height = size
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    if center is not None:
        cv2.circle(frame, (int(center[0]), int(center[1])), radius, color, thickness=-1)
    return frame


@pytest.fixture
def tracker() -> Iterator[LaserTracker]:
    """An initialised 320x240 tracker with default settings."""
    engine = LaserTracker()
    engine.init(WIDTH, HEIGHT)
    yield engine
    engine.dispose()


@pytest.fixture
def tracker_config() -> TrackerConfig:
    return TrackerConfig()


@pytest.fixture
def tuning() -> TuningConfig:
    return TuningConfig()


@pytest.fixture
def sample_yaml(tmp_path):
    """Write a small config.yaml and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        "preset: Red Laser\n"
        "tracker:\n"
        "  hueMax: 20\n"
        "  smoothing: 0.25\n"
        "  use_camshift: true\n"
        "tuning:\n"
        "  morph_kernel_size: 3\n"
        "  channel_order: RGB\n"
    )
    return cfg
