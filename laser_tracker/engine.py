"""Frame-synchronous laser dot tracking engine."""
from __future__ import annotations

import copy
import time
from typing import Any, Mapping, Optional

import numpy as np
from loguru import logger

from .backend import VisionBackend, load_backend
from .buffers import FrameBuffers
from .config import TrackerConfig, TuningConfig
from .errors import FrameProcessingError, InitializationError
from .estimator import StateEstimator
from .flow import OpticalFlowPredictor
from .kalman import ConstantVelocityKalman
from .presets import preset_patch
from .refiner import RegionRefiner
from .segmenter import ColorSegmenter
from .selector import BlobSelector
from .state import Observation, Point, TrackingResult, TrackingState


class LaserTracker:
    """Track a single bright coloured dot across a stream of frames.

    Typical use::

        tracker = LaserTracker()
        tracker.init(width, height)
        for frame in frames:
            result = tracker.process_frame(frame)
        tracker.dispose()

    Each frame runs segment, select, an optical-flow fallback when no blob
    was found, optional CamShift refinement and finally state estimation.
    """

    def __init__(
        self,
        config: Optional[TrackerConfig] = None,
        tuning: Optional[TuningConfig] = None,
        backend: Optional[VisionBackend] = None,
    ) -> None:
        self._config = config.model_copy() if config is not None else TrackerConfig()
        self.tuning = tuning or TuningConfig()
        self.backend = backend
        self.buffers: Optional[FrameBuffers] = None
        self._state = TrackingState()
        self._last_error: Optional[FrameProcessingError] = None
        self.process_time_ms = 0.0

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def init(self, width: int, height: int) -> None:
        if self.backend is None:
            self.backend = load_backend()
        self.buffers = FrameBuffers.allocate(width, height)
        self._state = TrackingState()
        self._last_error = None
        self.process_time_ms = 0.0
        self.segmenter = ColorSegmenter(self.backend, self.tuning)
        self.selector = BlobSelector(self.backend)
        self.flow = OpticalFlowPredictor(self.backend, self.tuning)
        self.refiner = RegionRefiner(self.backend, self.tuning)
        self.estimator = StateEstimator(
            ConstantVelocityKalman(
                process_noise=self.tuning.kalman_process_noise,
                measurement_noise=self.tuning.kalman_measurement_noise,
                initial_covariance=self.tuning.kalman_initial_covariance,
            )
        )
        logger.info("Laser tracker initialised for {}x{} frames", self.buffers.width, self.buffers.height)

    def dispose(self) -> None:
        if self.buffers is None:
            return
        self.buffers = None
        self._state = TrackingState()
        logger.info("Laser tracker disposed")

    # ------------------------------------------------------------------
    # per-frame processing
    # ------------------------------------------------------------------
    def process_frame(self, frame: np.ndarray) -> Optional[TrackingResult]:
        """Consume one frame and return a snapshot of the tracking state.

        Returns ``None`` when an unexpected failure occurred mid-pipeline; the
        state is then exactly what it was before the frame and the error is
        available as :attr:`last_error`.
        """

        buffers = self.buffers
        if buffers is None:
            raise InitializationError("process_frame() called before init() or after dispose()")
        buffers.check_frame(frame)

        start = time.perf_counter()
        saved = copy.deepcopy(self._state)
        try:
            self._run_pipeline(frame, buffers)
        except Exception as exc:
            self._state.restore(saved)
            self._last_error = FrameProcessingError(f"Frame processing failed: {exc}")
            self._last_error.__cause__ = exc
            logger.exception("Frame processing failed; tracking state left unchanged")
            return None
        self.process_time_ms = (time.perf_counter() - start) * 1000.0
        self._last_error = None
        return self._snapshot()

    def _run_pipeline(self, frame: np.ndarray, buffers: FrameBuffers) -> None:
        config = self._config
        state = self._state
        if config.use_optical_flow:
            self.flow.observe(frame, buffers)
        else:
            buffers.invalidate_gray()

        hsv = self.segmenter.segment(frame, config, buffers)
        blob = self.selector.select(buffers.mask, config)

        observation: Optional[Observation] = None
        fresh_histogram = False
        if blob is not None:
            observation = Observation(raw=blob.centroid, position=blob.centroid)
            if config.use_camshift:
                fresh_histogram = self.refiner.seed(state, hsv, buffers.mask, blob.bbox)
        elif config.use_optical_flow:
            point = self.flow.predict(state, config, buffers)
            if point is not None:
                observation = Observation(raw=point, position=point, predicted=True, source="flow")

        if observation is not None and config.use_camshift and not fresh_histogram:
            observation = self.refiner.refine(state, hsv, observation)

        self.estimator.update(state, config, observation)

    def _snapshot(self) -> TrackingResult:
        state = self._state
        return TrackingResult(
            position=state.current_position,
            normalized_position=self.get_normalized_position(),
            predicted_position=state.predicted_position,
            velocity=state.velocity,
            is_tracking=state.is_tracking,
            is_new_stroke=state.is_new_stroke,
            frames_since_last_detection=state.frames_since_last_detection,
            source=state.source,
            process_time_ms=self.process_time_ms,
        )

    # ------------------------------------------------------------------
    # parameters and accessors
    # ------------------------------------------------------------------
    def set_params(self, patch: Mapping[str, Any]) -> None:
        """Merge ``patch`` into the live config; takes effect next frame."""

        self._config.apply_patch(patch)
        if patch:
            logger.debug("Tracker parameters updated: {}", dict(patch))

    def apply_preset(self, name: str) -> None:
        self.set_params(preset_patch(name))
        logger.info("Applied colour preset '{}'", name)

    def get_normalized_position(self) -> Optional[Point]:
        """Current position scaled to ``[0, 1]`` by the frame size."""

        position = self._state.current_position
        if position is None or self.buffers is None:
            return None
        return Point(position.x / self.buffers.width, position.y / self.buffers.height)

    @property
    def config(self) -> TrackerConfig:
        return self._config

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def mask(self) -> Optional[np.ndarray]:
        if self.buffers is None:
            return None
        return self.buffers.mask.copy()

    @property
    def last_error(self) -> Optional[FrameProcessingError]:
        return self._last_error

    @property
    def is_initialized(self) -> bool:
        return self.buffers is not None


__all__ = ["LaserTracker"]
