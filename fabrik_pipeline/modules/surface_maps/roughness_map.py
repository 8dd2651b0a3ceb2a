"""Derive roughness maps from local colour variation."""
from __future__ import annotations

import numpy as np

from ..pbr._image_features import channel_difference, luminance_field, neighbourhood_mean
from ..pbr.buffers import PixelBuffer
from ..pbr.parameters import CRITICAL_PARAMETERS, DEFAULT_PARAMETERS, GenerationParameters


def colour_variance(rgb: np.ndarray) -> np.ndarray:
    """Mean of ``|dR| + |dG| + |dB|`` over the in-bounds 3x3 neighbourhood."""

    return neighbourhood_mean(rgb, CRITICAL_PARAMETERS["ROUGHNESS_WINDOW_RADIUS"], channel_difference)


def generate(
    pixels: PixelBuffer,
    luma: np.ndarray | None = None,
    params: GenerationParameters = DEFAULT_PARAMETERS,
) -> PixelBuffer:
    """Create a roughness map where busy, colour-varying areas read rougher."""

    if luma is None:
        luma = luminance_field(pixels)
    variance = colour_variance(pixels.rgb)
    roughness = (
        variance * params.roughness_intensity * CRITICAL_PARAMETERS["ROUGHNESS_VARIANCE_SCALE"]
        + (255.0 - luma) * CRITICAL_PARAMETERS["DARK_BIAS"]
    )
    return PixelBuffer.from_gray(roughness)


if __name__ == "__main__":  # pragma: no cover
    from PIL import Image

    sample = Image.new("RGBA", (16, 16), (200, 180, 120, 255))
    generate(PixelBuffer.from_image(sample)).to_image().show()
