"""Lucas-Kanade fallback for frames where the colour blob is missed."""
from __future__ import annotations

from typing import Optional

import numpy as np
from loguru import logger

from .backend import VisionBackend
from .buffers import FrameBuffers
from .config import TrackerConfig, TuningConfig
from .errors import SubsystemDegradation
from .state import Point, TrackingState


class OpticalFlowPredictor:
    def __init__(self, backend: VisionBackend, tuning: TuningConfig) -> None:
        self.backend = backend
        self.channel_order = tuning.channel_order
        self.window_size = tuning.flow_window_size
        self.pyramid_levels = tuning.flow_pyramid_levels
        self.max_iterations = tuning.flow_max_iterations
        self.epsilon = tuning.flow_epsilon

    def observe(self, frame: np.ndarray, buffers: FrameBuffers) -> None:
        """Shift the grayscale history by one frame."""

        buffers.rotate_gray()
        self.backend.to_gray(frame, self.channel_order, buffers.gray)
        buffers.gray_ready = True

    def predict(self, state: TrackingState, config: TrackerConfig, buffers: FrameBuffers) -> Optional[Point]:
        """Carry ``state.last_position`` into the current frame, or ``None``.

        The result is bounded by the frame and by ``config.max_velocity``.
        """

        last = state.last_position
        if state.flow_disabled or last is None or not buffers.has_previous:
            return None
        try:
            point = self.backend.track_point(
                buffers.prev_gray,
                buffers.gray,
                last,
                self.window_size,
                self.pyramid_levels,
                self.max_iterations,
                self.epsilon,
            )
        except SubsystemDegradation as exc:
            logger.warning("Optical flow disabled until the track is lost: {}", exc)
            state.flow_disabled = True
            return None
        if point is None or not buffers.contains(point.x, point.y):
            return None
        if point.distance_to(last) > config.max_velocity:
            logger.debug("Optical flow jump of {:.1f}px discarded", point.distance_to(last))
            return None
        return point


__all__ = ["OpticalFlowPredictor"]
