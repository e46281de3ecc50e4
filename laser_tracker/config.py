"""Configuration models and loader for the laser tracker."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .presets import preset_patch

CHANNEL_ORDERS = ("bgr", "rgb", "bgra", "rgba")


class TrackerConfig(BaseModel):
    """Live tracking parameters, patchable between frames.

    Field names are snake_case; the camelCase spelling used by the settings
    files of the browser build (``hueMin``, ``useKalman``, ...) is accepted
    everywhere a key is read.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    hue_min: int = Field(35, ge=0, le=180, description="Lower hue bound (OpenCV scale).")
    hue_max: int = Field(85, ge=0, le=180, description="Upper hue bound (OpenCV scale).")
    sat_min: int = Field(50, ge=0, le=255)
    sat_max: int = Field(255, ge=0, le=255)
    val_min: int = Field(200, ge=0, le=255)
    val_max: int = Field(255, ge=0, le=255)
    min_blob_area: float = Field(10.0, ge=0.0, description="Smallest accepted region area in px^2.")
    max_blob_area: float = Field(5000.0, ge=0.0, description="Largest accepted region area in px^2.")
    smoothing: float = Field(0.5, ge=0.0, le=1.0, description="Weight of the previous position when smoothing.")
    new_stroke_threshold: int = Field(10, ge=0, description="Missed frames before the stroke is considered over.")
    max_velocity: float = Field(100.0, ge=0.0, description="Largest plausible displacement in px/frame.")
    use_kalman: bool = Field(True)
    use_optical_flow: bool = Field(True)
    use_camshift: bool = Field(False)

    @classmethod
    def normalize_keys(cls, patch: Mapping[str, Any]) -> Dict[str, Any]:
        """Map snake_case or camelCase keys onto field names.

        Raises ``KeyError`` naming every unknown key.
        """

        by_alias = {to_camel(name): name for name in cls.model_fields}
        resolved: Dict[str, Any] = {}
        unknown = []
        for key, value in patch.items():
            if key in cls.model_fields:
                resolved[key] = value
            elif key in by_alias:
                resolved[by_alias[key]] = value
            else:
                unknown.append(key)
        if unknown:
            raise KeyError(f"Unknown tracker parameter(s): {sorted(unknown)}")
        return resolved

    def apply_patch(self, patch: Mapping[str, Any]) -> None:
        """Overwrite only the supplied keys; values are not range-checked."""

        for name, value in self.normalize_keys(patch).items():
            setattr(self, name, value)


class TuningConfig(BaseModel):
    """Fixed constants of the pipeline; changing them needs a fresh ``init``."""

    morph_kernel_size: int = Field(5, ge=1, description="Side of the elliptical opening/closing kernel.")
    refine_blend: float = Field(0.3, ge=0.0, le=1.0, description="Weight of the CamShift centroid in the blend.")
    refine_padding: int = Field(10, ge=0, description="Pixels added around a blob to seed the track window.")
    histogram_bins: int = Field(16, ge=1, le=180)
    camshift_max_iterations: int = Field(10, ge=1)
    camshift_epsilon: float = Field(1.0, gt=0.0)
    flow_window_size: int = Field(21, ge=3)
    flow_pyramid_levels: int = Field(3, ge=0)
    flow_max_iterations: int = Field(20, ge=1)
    flow_epsilon: float = Field(0.03, gt=0.0)
    kalman_process_noise: float = Field(0.1, gt=0.0)
    kalman_measurement_noise: float = Field(1.0, gt=0.0)
    kalman_initial_covariance: float = Field(1.0, gt=0.0)
    channel_order: str = Field("bgr", description="Channel layout of incoming frames.")

    @field_validator("morph_kernel_size")
    @classmethod
    def validate_kernel(cls, value: int) -> int:
        if value % 2 == 0:
            raise ValueError("morph_kernel_size must be odd")
        return value

    @field_validator("channel_order")
    @classmethod
    def validate_channel_order(cls, value: str) -> str:
        value = value.lower()
        if value not in CHANNEL_ORDERS:
            raise ValueError(f"channel_order must be one of {CHANNEL_ORDERS}")
        return value


class AppConfig(BaseModel):
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    tuning: TuningConfig = Field(default_factory=TuningConfig)
    preset: Optional[str] = Field(None, description="Colour preset applied before explicit tracker keys.")


def load_config(path: Path | str) -> AppConfig:
    """Load configuration from YAML, falling back to defaults when missing."""

    cfg_path = Path(path)
    if not cfg_path.exists():
        return AppConfig()
    data = yaml.safe_load(cfg_path.read_text()) or {}
    tracker = TrackerConfig.normalize_keys(data.get("tracker") or {})
    if data.get("preset"):
        tracker = {**preset_patch(data["preset"]), **tracker}
    data["tracker"] = tracker
    return AppConfig.model_validate(data)


__all__ = ["AppConfig", "CHANNEL_ORDERS", "TrackerConfig", "TuningConfig", "load_config"]
