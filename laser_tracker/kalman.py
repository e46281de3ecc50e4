"""Constant-velocity Kalman filter over ``[x, vx, y, vy]``."""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import FilterError
from .state import Point

# x += vx, y += vy per frame
TRANSITION = np.array(
    [
        [1, 1, 0, 0],
        [0, 1, 0, 0],
        [0, 0, 1, 1],
        [0, 0, 0, 1],
    ],
    dtype=np.float64,
)

MEASUREMENT = np.array(
    [
        [1, 0, 0, 0],
        [0, 0, 1, 0],
    ],
    dtype=np.float64,
)


@dataclass(frozen=True)
class KalmanState:
    mean: np.ndarray
    covariance: np.ndarray

    @property
    def position(self) -> Point:
        return Point(float(self.mean[0]), float(self.mean[2]))

    @property
    def velocity(self) -> Point:
        return Point(float(self.mean[1]), float(self.mean[3]))


class ConstantVelocityKalman:
    """Stateless filter maths; callers keep the :class:`KalmanState`.

    Every step returns a new state so a failed correction leaves the previous
    one untouched.
    """

    def __init__(
        self,
        process_noise: float = 0.1,
        measurement_noise: float = 1.0,
        initial_covariance: float = 1.0,
    ) -> None:
        self.process_cov = np.eye(4) * float(process_noise)
        self.measurement_cov = np.eye(2) * float(measurement_noise)
        self.initial_covariance = float(initial_covariance)

    def seed(self, point: Point) -> KalmanState:
        """Fresh prior at ``point`` with no motion."""

        mean = np.array([point.x, 0.0, point.y, 0.0])
        return KalmanState(mean=mean, covariance=np.eye(4) * self.initial_covariance)

    def predict(self, state: KalmanState) -> KalmanState:
        mean = TRANSITION @ state.mean
        covariance = TRANSITION @ state.covariance @ TRANSITION.T + self.process_cov
        return KalmanState(mean=mean, covariance=covariance)

    def correct(self, state: KalmanState, point: Point) -> KalmanState:
        observed = np.array([point.x, point.y])
        innovation = observed - MEASUREMENT @ state.mean
        innovation_cov = MEASUREMENT @ state.covariance @ MEASUREMENT.T + self.measurement_cov
        try:
            gain = np.linalg.solve(innovation_cov, MEASUREMENT @ state.covariance).T
        except np.linalg.LinAlgError as exc:
            raise FilterError(f"singular innovation covariance: {exc}") from exc
        mean = state.mean + gain @ innovation
        covariance = (np.eye(4) - gain @ MEASUREMENT) @ state.covariance
        if not (np.all(np.isfinite(mean)) and np.all(np.isfinite(covariance))):
            raise FilterError("non-finite Kalman update")
        return KalmanState(mean=mean, covariance=covariance)

    def step(self, state: KalmanState, point: Point) -> KalmanState:
        """Predict one frame ahead, then correct with ``point``."""

        return self.correct(self.predict(state), point)

    def project(self, state: KalmanState, steps: int) -> Point:
        """Position ``steps`` frames ahead of ``state`` without committing."""

        x, vx, y, vy = (float(v) for v in state.mean)
        return Point(x + vx * steps, y + vy * steps)


__all__ = ["ConstantVelocityKalman", "KalmanState", "MEASUREMENT", "TRANSITION"]
