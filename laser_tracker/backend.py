"""Vision primitives used by the tracking pipeline.

The engine never imports OpenCV directly.  It talks to a
:class:`VisionBackend`, which keeps the dependency explicit: a tracker built
without a working backend fails in ``init`` with
:class:`~laser_tracker.errors.InitializationError` instead of half-way
through the first frame.  :class:`OpenCVBackend` is the stock implementation;
tests substitute fakes where a failure has to be forced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Sequence, Tuple

import numpy as np

try:  # pragma: no cover - optional dependency
    import cv2  # type: ignore
except Exception:  # pragma: no cover
    cv2 = None  # type: ignore

from .errors import InitializationError, SubsystemDegradation
from .state import Point, Window


@dataclass(frozen=True)
class Moments:
    m00: float
    m10: float
    m01: float


class VisionBackend(Protocol):
    def to_hsv(self, frame: np.ndarray, channel_order: str, out: np.ndarray) -> np.ndarray: ...

    def to_gray(self, frame: np.ndarray, channel_order: str, out: np.ndarray) -> np.ndarray: ...

    def threshold(self, hsv: np.ndarray, lower: np.ndarray, upper: np.ndarray, out: np.ndarray) -> np.ndarray: ...

    def morphology(self, mask: np.ndarray, kernel_size: int) -> np.ndarray: ...

    def find_regions(self, mask: np.ndarray) -> Sequence[np.ndarray]: ...

    def region_area(self, region: np.ndarray) -> float: ...

    def moments(self, region: np.ndarray) -> Moments: ...

    def bounding_box(self, region: np.ndarray) -> Window: ...

    def track_point(
        self,
        prev_gray: np.ndarray,
        gray: np.ndarray,
        point: Point,
        window_size: int,
        pyramid_levels: int,
        max_iterations: int,
        epsilon: float,
    ) -> Optional[Point]: ...

    def hue_histogram(self, hsv: np.ndarray, mask: np.ndarray, window: Window, bins: int) -> np.ndarray: ...

    def mode_seek(
        self,
        hsv: np.ndarray,
        histogram: np.ndarray,
        window: Window,
        max_iterations: int,
        epsilon: float,
    ) -> Tuple[Point, Window]: ...


class OpenCVBackend:
    """:class:`VisionBackend` on top of ``cv2``."""

    def __init__(self) -> None:
        if cv2 is None:
            raise InitializationError("OpenCV (cv2) is not available; install opencv-python")
        self._kernels: Dict[int, np.ndarray] = {}
        self._hsv_codes = {
            "bgr": cv2.COLOR_BGR2HSV,
            "rgb": cv2.COLOR_RGB2HSV,
            "bgra": cv2.COLOR_BGR2HSV,
            "rgba": cv2.COLOR_RGB2HSV,
        }
        self._strip_alpha = {"bgra": cv2.COLOR_BGRA2BGR, "rgba": cv2.COLOR_RGBA2RGB}
        self._gray_codes = {
            "bgr": cv2.COLOR_BGR2GRAY,
            "rgb": cv2.COLOR_RGB2GRAY,
            "bgra": cv2.COLOR_BGRA2GRAY,
            "rgba": cv2.COLOR_RGBA2GRAY,
        }

    def to_hsv(self, frame: np.ndarray, channel_order: str, out: np.ndarray) -> np.ndarray:
        if channel_order in self._strip_alpha:
            frame = cv2.cvtColor(frame, self._strip_alpha[channel_order])
        return cv2.cvtColor(frame, self._hsv_codes[channel_order], dst=out)

    def to_gray(self, frame: np.ndarray, channel_order: str, out: np.ndarray) -> np.ndarray:
        return cv2.cvtColor(frame, self._gray_codes[channel_order], dst=out)

    def threshold(self, hsv: np.ndarray, lower: np.ndarray, upper: np.ndarray, out: np.ndarray) -> np.ndarray:
        return cv2.inRange(hsv, lower, upper, dst=out)

    def _kernel(self, size: int) -> np.ndarray:
        kernel = self._kernels.get(size)
        if kernel is None:
            kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (size, size))
            self._kernels[size] = kernel
        return kernel

    def morphology(self, mask: np.ndarray, kernel_size: int) -> np.ndarray:
        """Open then close ``mask`` in place."""

        kernel = self._kernel(kernel_size)
        cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel, dst=mask)
        cv2.morphologyEx(mask, cv2.MORPH_CLOSE, kernel, dst=mask)
        return mask

    def find_regions(self, mask: np.ndarray) -> Sequence[np.ndarray]:
        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
        return contours

    def region_area(self, region: np.ndarray) -> float:
        return float(cv2.contourArea(region))

    def moments(self, region: np.ndarray) -> Moments:
        m = cv2.moments(region)
        return Moments(m00=float(m["m00"]), m10=float(m["m10"]), m01=float(m["m01"]))

    def bounding_box(self, region: np.ndarray) -> Window:
        x, y, w, h = cv2.boundingRect(region)
        return (int(x), int(y), int(w), int(h))

    def track_point(
        self,
        prev_gray: np.ndarray,
        gray: np.ndarray,
        point: Point,
        window_size: int,
        pyramid_levels: int,
        max_iterations: int,
        epsilon: float,
    ) -> Optional[Point]:
        p0 = np.array([[[point.x, point.y]]], dtype=np.float32)
        criteria = (cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT, int(max_iterations), float(epsilon))
        try:
            p1, status, _ = cv2.calcOpticalFlowPyrLK(
                prev_gray,
                gray,
                p0,
                None,
                winSize=(window_size, window_size),
                maxLevel=pyramid_levels,
                criteria=criteria,
            )
        except cv2.error as exc:
            raise SubsystemDegradation(f"optical flow failed: {exc}") from exc
        if p1 is None or status is None or int(status[0, 0]) != 1:
            return None
        return Point(float(p1[0, 0, 0]), float(p1[0, 0, 1]))

    def hue_histogram(self, hsv: np.ndarray, mask: np.ndarray, window: Window, bins: int) -> np.ndarray:
        x, y, w, h = window
        roi = hsv[y : y + h, x : x + w]
        roi_mask = mask[y : y + h, x : x + w]
        try:
            hist = cv2.calcHist([roi], [0], roi_mask, [bins], [0, 180])
        except cv2.error as exc:
            raise SubsystemDegradation(f"histogram failed: {exc}") from exc
        if float(hist.max()) <= 0.0:
            raise SubsystemDegradation("no masked pixels inside the track window")
        cv2.normalize(hist, hist, 0, 255, cv2.NORM_MINMAX)
        return hist

    def mode_seek(
        self,
        hsv: np.ndarray,
        histogram: np.ndarray,
        window: Window,
        max_iterations: int,
        epsilon: float,
    ) -> Tuple[Point, Window]:
        criteria = (cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT, int(max_iterations), float(epsilon))
        wx, wy, ww, wh = window
        try:
            back_projection = cv2.calcBackProject([hsv], [0], histogram, [0, 180], 1)
            # CamShift reports a (0, 0) centre rather than failing on an empty window.
            if not back_projection[wy : wy + wh, wx : wx + ww].any():
                raise SubsystemDegradation(f"no hue evidence inside the track window {window}")
            rotated, new_window = cv2.CamShift(back_projection, window, criteria)
        except cv2.error as exc:
            raise SubsystemDegradation(f"CamShift failed: {exc}") from exc
        (cx, cy), (rw, rh), _ = rotated
        x, y, w, h = (int(v) for v in new_window)
        if w <= 0 or h <= 0 or (rw <= 0 and rh <= 0):
            raise SubsystemDegradation(f"CamShift collapsed the window to {w}x{h}")
        return Point(float(cx), float(cy)), (x, y, w, h)


def load_backend() -> VisionBackend:
    """Return the default backend, raising ``InitializationError`` without OpenCV."""

    return OpenCVBackend()


__all__ = ["Moments", "OpenCVBackend", "VisionBackend", "load_backend"]
