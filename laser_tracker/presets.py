"""Named HSV ranges for common pointer colours."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List


@dataclass(frozen=True)
class ColorPreset:
    hue_min: int
    hue_max: int
    sat_min: int
    sat_max: int
    val_min: int
    val_max: int


COLOR_PRESETS: Dict[str, ColorPreset] = {
    "Green Laser": ColorPreset(35, 85, 50, 255, 200, 255),
    "Red Laser": ColorPreset(0, 15, 100, 255, 200, 255),
    "Blue Laser": ColorPreset(100, 130, 100, 255, 200, 255),
    # Saturated sensors clip a bright dot to near-white, whatever its colour.
    "White/Bright": ColorPreset(0, 180, 0, 50, 240, 255),
}

DEFAULT_PRESET = "Green Laser"


def preset_names() -> List[str]:
    return list(COLOR_PRESETS)


def preset_patch(name: str) -> Dict[str, int]:
    """Return the ``set_params`` patch for a named preset."""

    if name not in COLOR_PRESETS:
        raise KeyError(f"Unknown color preset '{name}'. Available: {sorted(COLOR_PRESETS)}")
    return asdict(COLOR_PRESETS[name])


__all__ = ["COLOR_PRESETS", "ColorPreset", "DEFAULT_PRESET", "preset_names", "preset_patch"]
