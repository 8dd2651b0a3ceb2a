"""Per-pixel feature helpers shared by every map generator."""
from __future__ import annotations

from typing import Callable, Tuple

import numpy as np
from scipy import ndimage

from .buffers import PixelBuffer
from .parameters import LUMA_WEIGHTS

Metric = Callable[[np.ndarray, np.ndarray], np.ndarray]


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Perceptual grayscale of RGB samples in the 0-255 range."""

    return rgb[..., 0] * LUMA_WEIGHTS[0] + rgb[..., 1] * LUMA_WEIGHTS[1] + rgb[..., 2] * LUMA_WEIGHTS[2]


def luminance_field(pixels: PixelBuffer) -> np.ndarray:
    """Luminance of every pixel, computed once per generation and shared."""

    field = luminance(pixels.rgb)
    field.setflags(write=False)
    return field


def saturation(rgb: np.ndarray) -> np.ndarray:
    """HSV saturation ``(max - min) / max``, zero where ``max`` is zero."""

    maxc = rgb.max(axis=-1)
    minc = rgb.min(axis=-1)
    sat = np.zeros_like(maxc, dtype=np.float64)
    valid = maxc > 0
    sat[valid] = (maxc[valid] - minc[valid]) / maxc[valid]
    return sat


def _overlap(offset: int, size: int) -> Tuple[slice, slice]:
    """Slices pairing each centre index with its in-bounds neighbour at *offset*."""

    start = max(-offset, 0)
    stop = max(size - max(offset, 0), start)
    return slice(start, stop), slice(start + offset, stop + offset)


def neighbourhood_mean(field: np.ndarray, radius: int, metric: Metric) -> np.ndarray:
    """Average ``metric(centre, neighbour)`` over a square window.

    The window spans ``2 * radius + 1`` pixels per side and includes the
    centre.  Neighbours falling outside the image are skipped rather than
    padded, and each pixel is divided by the number of neighbours actually
    visited, so a corner pixel of a 5x5 window averages over 3x3 samples.
    """

    height, width = field.shape[:2]
    total = np.zeros((height, width), dtype=np.float64)
    count = np.zeros((height, width), dtype=np.float64)
    for dy in range(-radius, radius + 1):
        rows, neighbour_rows = _overlap(dy, height)
        for dx in range(-radius, radius + 1):
            cols, neighbour_cols = _overlap(dx, width)
            centre = field[rows, cols]
            if centre.size == 0:
                continue
            total[rows, cols] += metric(centre, field[neighbour_rows, neighbour_cols])
            count[rows, cols] += 1.0
    return total / count


def absolute_difference(centre: np.ndarray, neighbour: np.ndarray) -> np.ndarray:
    return np.abs(centre - neighbour)


def channel_difference(centre: np.ndarray, neighbour: np.ndarray) -> np.ndarray:
    """Sum of absolute per-channel differences."""

    return np.abs(centre - neighbour).sum(axis=-1)


def correlate_clamped(field: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Correlate *field* with *kernel*, clamping out-of-range taps to the edge."""

    return ndimage.correlate(np.asarray(field, dtype=np.float64), kernel, mode="nearest")


__all__ = [
    "absolute_difference",
    "channel_difference",
    "correlate_clamped",
    "luminance",
    "luminance_field",
    "neighbourhood_mean",
    "saturation",
]
