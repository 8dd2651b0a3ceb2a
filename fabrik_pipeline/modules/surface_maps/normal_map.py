"""Generate tangent-space normal maps from a luminance height field."""
from __future__ import annotations

from typing import Tuple

import numpy as np

from ..geometry_maps.height_map import height_field
from ..pbr._image_features import correlate_clamped, luminance_field
from ..pbr.buffers import PixelBuffer, quantize
from ..pbr.parameters import DEFAULT_PARAMETERS, SOBEL_X, SOBEL_Y, GenerationParameters


def height_gradients(height: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Sobel gradients of *height* with clamp-to-edge sampling."""

    return correlate_clamped(height, SOBEL_X), correlate_clamped(height, SOBEL_Y)


def generate(
    pixels: PixelBuffer,
    luma: np.ndarray | None = None,
    params: GenerationParameters = DEFAULT_PARAMETERS,
) -> PixelBuffer:
    """Create a tangent-space normal map.

    The candidate vector ``(-dx * strength, -dy * strength, 1)`` is normalised
    and each axis remapped from ``[-1, 1]`` to ``[0, 255]``.  A strength of
    zero yields the flat ``(0, 0, 1)`` normal everywhere.
    """

    if luma is None:
        luma = luminance_field(pixels)
    grad_x, grad_y = height_gradients(height_field(luma))

    nx = -grad_x * params.normal_strength
    ny = -grad_y * params.normal_strength
    nz = np.ones_like(nx)

    length = np.sqrt(nx ** 2 + ny ** 2 + nz ** 2)
    normal = np.stack([nx / length, ny / length, nz / length], axis=-1)
    encoded = quantize((normal + 1.0) * 0.5 * 255.0)

    alpha = np.full(encoded.shape[:2], 255, dtype=np.uint8)
    return PixelBuffer(np.dstack([encoded, alpha]))


if __name__ == "__main__":  # pragma: no cover - manual smoke test
    from PIL import Image

    sample = Image.new("RGBA", (16, 16), (120, 100, 90, 255))
    generate(PixelBuffer.from_image(sample)).to_image().show()
