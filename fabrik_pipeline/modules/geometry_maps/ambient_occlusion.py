"""Approximate ambient occlusion from local luminance contrast."""
from __future__ import annotations

import numpy as np

from ..pbr._image_features import absolute_difference, luminance_field, neighbourhood_mean
from ..pbr.buffers import PixelBuffer
from ..pbr.parameters import CRITICAL_PARAMETERS, DEFAULT_PARAMETERS, GenerationParameters


def local_contrast(luma: np.ndarray) -> np.ndarray:
    """Mean absolute luminance difference to the in-bounds 5x5 neighbourhood."""

    return neighbourhood_mean(luma, CRITICAL_PARAMETERS["AO_WINDOW_RADIUS"], absolute_difference)


def generate(
    pixels: PixelBuffer,
    luma: np.ndarray | None = None,
    params: GenerationParameters = DEFAULT_PARAMETERS,
) -> PixelBuffer:
    """Create an occlusion map darkening high-contrast and dark regions.

    ``ao = 255 - contrast * intensity * 2 - (255 - luma) * 0.3``, clamped to
    the byte range and replicated into R, G and B.
    """

    if luma is None:
        luma = luminance_field(pixels)
    contrast = local_contrast(luma)
    ao = (
        255.0
        - contrast * params.ao_intensity * CRITICAL_PARAMETERS["AO_CONTRAST_SCALE"]
        - (255.0 - luma) * CRITICAL_PARAMETERS["DARK_BIAS"]
    )
    return PixelBuffer.from_gray(ao)


if __name__ == "__main__":  # pragma: no cover
    from PIL import Image

    sample = Image.new("RGBA", (16, 16), (40, 80, 120, 255))
    generate(PixelBuffer.from_image(sample)).to_image().show()
