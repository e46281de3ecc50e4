"""HSV thresholding of a frame into a cleaned binary mask."""
from __future__ import annotations

import numpy as np

from .backend import VisionBackend
from .buffers import FrameBuffers
from .config import TrackerConfig, TuningConfig


def hsv_bounds(config: TrackerConfig) -> tuple[np.ndarray, np.ndarray]:
    lower = np.clip([config.hue_min, config.sat_min, config.val_min], 0, 255).astype(np.uint8)
    upper = np.clip([config.hue_max, config.sat_max, config.val_max], 0, 255).astype(np.uint8)
    return lower, upper


class ColorSegmenter:
    def __init__(self, backend: VisionBackend, tuning: TuningConfig) -> None:
        self.backend = backend
        self.kernel_size = tuning.morph_kernel_size
        self.channel_order = tuning.channel_order

    def segment(self, frame: np.ndarray, config: TrackerConfig, buffers: FrameBuffers) -> np.ndarray:
        """Fill ``buffers.hsv`` and ``buffers.mask``; return the HSV image."""

        hsv = self.backend.to_hsv(frame, self.channel_order, buffers.hsv)
        lower, upper = hsv_bounds(config)
        self.backend.threshold(hsv, lower, upper, buffers.mask)
        self.backend.morphology(buffers.mask, self.kernel_size)
        return hsv


__all__ = ["ColorSegmenter", "hsv_bounds"]
