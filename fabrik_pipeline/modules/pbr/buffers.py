"""Pixel containers shared by the decoder, the generators and the encoder."""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Dict, Mapping, Sequence

import numpy as np
from PIL import Image

from ...core.config import TEXTURE_ORDER
from ...core.errors import ProcessingError

CHANNELS = 4

# Standard PBR material slot for each map.
MATERIAL_CHANNELS = {
    "albedo": "base_color",
    "ao": "ambient_occlusion",
    "roughness": "roughness",
    "metallic": "metalness",
    "normal": "normal",
}


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Row-major RGBA8 pixels with the origin at the top-left corner.

    ``pixels`` has shape ``(height, width, 4)`` and is frozen on construction
    so a buffer can be read from several workers at once.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        array = self.pixels
        if not isinstance(array, np.ndarray):
            raise ProcessingError(f"Pixel data must be a numpy array, got {type(array).__name__}")
        if array.dtype != np.uint8:
            raise ProcessingError(f"Pixel data must be uint8, got {array.dtype}")
        if array.ndim != 3 or array.shape[2] != CHANNELS:
            raise ProcessingError(f"Pixel data must have shape (height, width, 4), got {array.shape}")
        if array.shape[0] == 0 or array.shape[1] == 0:
            raise ProcessingError(f"Pixel buffer must not be empty, got {array.shape[1]}x{array.shape[0]}")
        if array.flags.writeable:
            array = array.copy()
            array.setflags(write=False)
            object.__setattr__(self, "pixels", array)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def rgb(self) -> np.ndarray:
        """RGB samples as float64 in the 0-255 range."""

        return self.pixels[..., :3].astype(np.float64)

    @classmethod
    def from_samples(cls, width: int, height: int, samples: bytes | Sequence[int] | np.ndarray) -> "PixelBuffer":
        """Wrap a flat RGBA8 sample sequence, checking its length."""

        flat = np.frombuffer(samples, dtype=np.uint8) if isinstance(samples, (bytes, bytearray)) else np.asarray(samples)
        expected = width * height * CHANNELS
        if flat.size != expected:
            raise ProcessingError(
                f"Sample count {flat.size} does not match {width}x{height}x{CHANNELS} = {expected}"
            )
        return cls(flat.astype(np.uint8, copy=False).reshape(height, width, CHANNELS))

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    @classmethod
    def from_gray(cls, values: np.ndarray) -> "PixelBuffer":
        """Replicate a single float channel into R, G and B with opaque alpha."""

        channel = quantize(values)
        alpha = np.full(channel.shape, 255, dtype=np.uint8)
        return cls(np.dstack([channel, channel, channel, alpha]))

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels), mode="RGBA")

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()


def quantize(values: np.ndarray) -> np.ndarray:
    """Store float samples as clamped bytes, rounding halves to even."""

    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


@dataclass(frozen=True, eq=False)
class TextureSet:
    """The five generated maps together with their PNG encodings."""

    maps: Mapping[str, PixelBuffer]
    encoded: Mapping[str, bytes] = field(default_factory=dict)

    def __post_init__(self) -> None:
        missing = [name for name in TEXTURE_ORDER if name not in self.maps]
        if missing:
            raise ProcessingError(f"Texture set is missing maps: {', '.join(missing)}")
        sizes = {buffer.size for buffer in self.maps.values()}
        if len(sizes) != 1:
            raise ProcessingError(f"Texture set maps disagree on size: {sorted(sizes)}")

    @property
    def size(self) -> tuple[int, int]:
        return self.albedo.size

    @property
    def albedo(self) -> PixelBuffer:
        return self.maps["albedo"]

    @property
    def ao(self) -> PixelBuffer:
        return self.maps["ao"]

    @property
    def roughness(self) -> PixelBuffer:
        return self.maps["roughness"]

    @property
    def metallic(self) -> PixelBuffer:
        return self.maps["metallic"]

    @property
    def normal(self) -> PixelBuffer:
        return self.maps["normal"]

    def as_data_uris(self) -> Dict[str, str]:
        """Return each encoded map as a ``data:image/png;base64`` URI."""

        return {
            name: "data:image/png;base64," + base64.b64encode(payload).decode("ascii")
            for name, payload in self.encoded.items()
        }

    def material_bindings(self) -> Dict[str, PixelBuffer]:
        """Map each buffer to the material slot a PBR renderer binds it to."""

        return {MATERIAL_CHANNELS[name]: self.maps[name] for name in TEXTURE_ORDER}


__all__ = ["CHANNELS", "MATERIAL_CHANNELS", "PixelBuffer", "TextureSet", "quantize"]
