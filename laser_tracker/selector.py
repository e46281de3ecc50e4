"""Pick the best connected region of the mask and compute its centroid."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .backend import VisionBackend
from .config import TrackerConfig
from .state import Point, Window


@dataclass(frozen=True)
class Blob:
    centroid: Point
    area: float
    bbox: Window


class BlobSelector:
    def __init__(self, backend: VisionBackend) -> None:
        self.backend = backend

    def select(self, mask: np.ndarray, config: TrackerConfig) -> Optional[Blob]:
        """Largest region with area in ``[min_blob_area, max_blob_area]``.

        Equal areas keep the region found first.  Regions with a zero
        ``m00`` moment are skipped.
        """

        best: Optional[Blob] = None
        for region in self.backend.find_regions(mask):
            area = self.backend.region_area(region)
            if area < config.min_blob_area or area > config.max_blob_area:
                continue
            if best is not None and area <= best.area:
                continue
            moments = self.backend.moments(region)
            if moments.m00 == 0:
                continue
            centroid = Point(moments.m10 / moments.m00, moments.m01 / moments.m00)
            best = Blob(centroid=centroid, area=area, bbox=self.backend.bounding_box(region))
        return best


__all__ = ["Blob", "BlobSelector"]
