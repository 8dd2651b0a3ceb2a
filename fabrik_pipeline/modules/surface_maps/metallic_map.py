"""Metalness estimation from brightness and colour saturation."""
from __future__ import annotations

import numpy as np

from ..pbr._image_features import luminance_field, saturation
from ..pbr.buffers import PixelBuffer
from ..pbr.parameters import CRITICAL_PARAMETERS, DEFAULT_PARAMETERS, GenerationParameters


def generate(
    pixels: PixelBuffer,
    luma: np.ndarray | None = None,
    params: GenerationParameters = DEFAULT_PARAMETERS,
) -> PixelBuffer:
    """Score bright, desaturated pixels as metallic."""

    if luma is None:
        luma = luminance_field(pixels)
    sat = saturation(pixels.rgb)
    metallic = luma * params.metallic_intensity * (1.0 - sat * CRITICAL_PARAMETERS["METALLIC_SATURATION_WEIGHT"])
    return PixelBuffer.from_gray(metallic)


if __name__ == "__main__":  # pragma: no cover
    from PIL import Image

    sample = Image.new("RGBA", (16, 16), (160, 160, 200, 255))
    generate(PixelBuffer.from_image(sample)).to_image().show()
