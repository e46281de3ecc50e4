"""CamShift refinement of the detected position."""
from __future__ import annotations

import numpy as np
from loguru import logger

from .backend import VisionBackend
from .config import TuningConfig
from .errors import SubsystemDegradation
from .state import Observation, Point, TrackingState, Window


def padded_window(bbox: Window, padding: int, width: int, height: int) -> Window:
    """Grow ``bbox`` by ``padding`` on every side, clipped to the frame."""

    x, y, w, h = bbox
    x0 = max(0, x - padding)
    y0 = max(0, y - padding)
    x1 = min(width, x + w + padding)
    y1 = min(height, y + h + padding)
    return (x0, y0, max(0, x1 - x0), max(0, y1 - y0))


class RegionRefiner:
    """Hue-histogram tracker that nudges the raw detection.

    The histogram is built once per tracking session from the first blob.
    Every later blob re-seeds the track window; CamShift then moves the
    window over the back-projection and its centre is blended into the
    observation.  Any failure switches the refiner off until the session
    ends (see :meth:`TrackingState.end_stroke`).
    """

    def __init__(self, backend: VisionBackend, tuning: TuningConfig) -> None:
        self.backend = backend
        self.padding = tuning.refine_padding
        self.bins = tuning.histogram_bins
        self.blend = tuning.refine_blend
        self.max_iterations = tuning.camshift_max_iterations
        self.epsilon = tuning.camshift_epsilon

    def seed(self, state: TrackingState, hsv: np.ndarray, mask: np.ndarray, bbox: Window) -> bool:
        """Point the track window at ``bbox``.

        Returns ``True`` when the histogram was built on this call, in which
        case there is nothing to refine yet.
        """

        if state.refiner_disabled:
            return False
        height, width = mask.shape[:2]
        window = padded_window(bbox, self.padding, width, height)
        if window[2] == 0 or window[3] == 0:
            self._disable(state, f"empty seed window {window}")
            return False
        state.refiner_window = window
        if state.refiner_histogram is not None:
            return False
        try:
            state.refiner_histogram = self.backend.hue_histogram(hsv, mask, window, self.bins)
        except SubsystemDegradation as exc:
            self._disable(state, str(exc))
            return False
        logger.debug("Region refiner seeded at {}", window)
        return True

    def refine(self, state: TrackingState, hsv: np.ndarray, observation: Observation) -> Observation:
        if state.refiner_disabled or state.refiner_window is None or state.refiner_histogram is None:
            return observation
        try:
            centre, window = self.backend.mode_seek(
                hsv,
                state.refiner_histogram,
                state.refiner_window,
                self.max_iterations,
                self.epsilon,
            )
        except SubsystemDegradation as exc:
            self._disable(state, str(exc))
            return observation
        state.refiner_window = window
        raw = observation.position
        keep = 1.0 - self.blend
        blended = Point(raw.x * keep + centre.x * self.blend, raw.y * keep + centre.y * self.blend)
        return Observation(
            raw=observation.raw,
            position=blended,
            predicted=observation.predicted,
            source=observation.source,
        )

    def _disable(self, state: TrackingState, reason: str) -> None:
        logger.warning("Region refiner disabled until the track is lost: {}", reason)
        state.refiner_window = None
        state.refiner_histogram = None
        state.refiner_disabled = True


__all__ = ["RegionRefiner", "padded_window"]
