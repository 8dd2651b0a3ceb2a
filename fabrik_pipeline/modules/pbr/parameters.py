"""Generation parameters and heuristic constants for the texture pipeline."""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, List, Mapping, Tuple

import numpy as np

# Perceptual grayscale weights (ITU-R BT.601).
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)

CRITICAL_PARAMETERS = {
    # Ambient occlusion
    "AO_WINDOW_RADIUS": 2,
    "AO_CONTRAST_SCALE": 2.0,
    # Roughness
    "ROUGHNESS_WINDOW_RADIUS": 1,
    "ROUGHNESS_VARIANCE_SCALE": 0.5,
    # Shared darkening / roughening bias applied to dark source pixels
    "DARK_BIAS": 0.3,
    # Metallic
    "METALLIC_SATURATION_WEIGHT": 0.5,
}

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = np.array([[-1, -2, -1], [0, 0, 0], [1, 2, 1]], dtype=np.float64)

# UI slider bounds.  Informational only: the generators honour any value.
NOMINAL_RANGES: Dict[str, Tuple[float, float]] = {
    "ao_intensity": (0.0, 2.0),
    "roughness_intensity": (0.0, 2.0),
    "metallic_intensity": (0.0, 1.0),
    "normal_strength": (0.0, 2.0),
}


@dataclass(frozen=True)
class GenerationParameters:
    """Four independent multipliers steering the derived maps."""

    ao_intensity: float = 1.0
    roughness_intensity: float = 1.0
    metallic_intensity: float = 0.5
    normal_strength: float = 1.0

    @classmethod
    def from_mapping(cls, values: Mapping[str, object]) -> "GenerationParameters":
        """Build parameters from snake_case or camelCase keys, ignoring unknown ones."""

        aliases = {
            "aoIntensity": "ao_intensity",
            "roughnessIntensity": "roughness_intensity",
            "metallicIntensity": "metallic_intensity",
            "normalStrength": "normal_strength",
        }
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, float] = {}
        for key, value in values.items():
            name = aliases.get(key, key)
            if name in known:
                kwargs[name] = float(value)  # type: ignore[arg-type]
        return cls(**kwargs)

    def out_of_range(self) -> List[str]:
        """Return the names of parameters lying outside their nominal range."""

        outside = []
        for name, (low, high) in NOMINAL_RANGES.items():
            value = getattr(self, name)
            if not low <= value <= high:
                outside.append(name)
        return outside


DEFAULT_PARAMETERS = GenerationParameters()

__all__ = [
    "CRITICAL_PARAMETERS",
    "DEFAULT_PARAMETERS",
    "GenerationParameters",
    "LUMA_WEIGHTS",
    "NOMINAL_RANGES",
    "SOBEL_X",
    "SOBEL_Y",
]
