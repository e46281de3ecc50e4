"""Fuse accepted observations and segment the track into strokes."""
from __future__ import annotations

from typing import Optional, Tuple

from loguru import logger

from .config import TrackerConfig
from .errors import FilterError
from .kalman import ConstantVelocityKalman
from .state import ORIGIN, Observation, Point, TrackingState


class StateEstimator:
    """Owns the IDLE/TRACKING lifecycle of a :class:`TrackingState`.

    A frame either accepts an observation (resetting the miss counter) or
    counts as a miss.  Misses beyond ``new_stroke_threshold`` end the stroke;
    the next accepted observation then starts a new one.
    """

    def __init__(self, kalman: ConstantVelocityKalman) -> None:
        self.kalman = kalman

    def update(self, state: TrackingState, config: TrackerConfig, observation: Optional[Observation]) -> None:
        state.predicted_position = None
        new_stroke = state.frames_since_last_detection > config.new_stroke_threshold or state.last_position is None
        if observation is None or self._is_outlier(state, config, observation):
            self._miss(state, config)
        else:
            self._accept(state, config, observation, new_stroke)

    def _is_outlier(self, state: TrackingState, config: TrackerConfig, observation: Observation) -> bool:
        if observation.predicted or state.last_position is None:
            return False
        jump = observation.raw.distance_to(state.last_position)
        if jump > config.max_velocity:
            logger.debug("Rejected {} detection: jump of {:.1f}px > {}", observation.source, jump, config.max_velocity)
            return True
        return False

    def _accept(self, state: TrackingState, config: TrackerConfig, observation: Observation, new_stroke: bool) -> None:
        if new_stroke:
            logger.info("New stroke at ({:.1f}, {:.1f})", observation.raw.x, observation.raw.y)
        state.is_new_stroke = new_stroke
        if config.use_kalman:
            try:
                position, velocity = self._kalman_step(state, observation.position, new_stroke)
            except FilterError as exc:
                logger.warning("Kalman update failed, smoothing this frame instead: {}", exc)
                position, velocity = self._smooth(state, config, observation, new_stroke)
        else:
            # Filter state is not advanced while smoothing; re-enabling Kalman reseeds.
            state.kalman = None
            position, velocity = self._smooth(state, config, observation, new_stroke)
        state.current_position = position
        state.velocity = velocity
        state.last_position = observation.raw
        state.source = observation.source
        state.is_tracking = True
        state.frames_since_last_detection = 0

    def _kalman_step(self, state: TrackingState, point: Point, new_stroke: bool) -> Tuple[Point, Point]:
        prior = state.kalman
        if new_stroke or prior is None:
            prior = self.kalman.seed(point)
        predicted = self.kalman.predict(prior)
        try:
            posterior = self.kalman.correct(predicted, point)
        except FilterError:
            # Keep the filter in step with the frame count.
            state.kalman = predicted
            raise
        state.kalman = posterior
        return posterior.position, posterior.velocity

    @staticmethod
    def _smooth(
        state: TrackingState, config: TrackerConfig, observation: Observation, new_stroke: bool
    ) -> Tuple[Point, Point]:
        detected = observation.position
        previous = state.current_position
        if new_stroke or previous is None:
            return detected, ORIGIN
        s = config.smoothing
        position = Point(previous.x * s + detected.x * (1 - s), previous.y * s + detected.y * (1 - s))
        last = state.last_position
        if last is None:
            return position, ORIGIN
        return position, Point(observation.raw.x - last.x, observation.raw.y - last.y)

    def _miss(self, state: TrackingState, config: TrackerConfig) -> None:
        state.is_new_stroke = False
        state.source = None
        state.frames_since_last_detection += 1
        missed = state.frames_since_last_detection
        if missed <= config.new_stroke_threshold:
            if config.use_kalman and state.kalman is not None:
                state.predicted_position = self.kalman.project(state.kalman, missed)
            return
        if state.is_tracking:
            logger.info("Track lost after {} missed frames", missed)
        state.end_stroke()


__all__ = ["StateEstimator"]
