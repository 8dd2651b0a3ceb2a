"""Generate height fields from source luminance."""
from __future__ import annotations

import numpy as np


def height_field(luma: np.ndarray) -> np.ndarray:
    """Normalise luminance to a height in ``[0, 1]``."""

    return np.asarray(luma, dtype=np.float64) / 255.0
