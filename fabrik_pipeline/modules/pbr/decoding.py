"""Decode source images into bounded-size RGBA pixel buffers."""
from __future__ import annotations

import base64
import binascii
import io
import logging
import math
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ...core.config import MAX_TEXTURE_SIZE
from ...core.errors import LoadError
from .buffers import PixelBuffer

LOGGER = logging.getLogger("fabrik_pipeline.pbr.decoding")

ImageSource = Union[bytes, bytearray, memoryview, str, Path, Image.Image, PixelBuffer]

_DATA_URI_PREFIX = "data:"
_SIXTEEN_BIT_MODES = ("I;16", "I;16B", "I;16L", "I;16N", "I")


def ensure_image_content_type(content_type: Optional[str]) -> None:
    """Reject anything not declared as ``image/*``."""

    if not content_type or not content_type.strip().lower().startswith("image/"):
        raise LoadError(f"Unsupported content type {content_type!r}; expected an image")


def decode_data_uri(uri: str) -> bytes:
    """Return the payload of a ``data:image/...`` URI."""

    header, sep, payload = uri.partition(",")
    if not sep or not header.lower().startswith(_DATA_URI_PREFIX):
        raise LoadError("Malformed data URI")
    meta = header[len(_DATA_URI_PREFIX):].split(";")
    ensure_image_content_type(meta[0])
    if "base64" in (part.strip().lower() for part in meta[1:]):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise LoadError(f"Invalid base64 payload in data URI: {exc}") from exc
    raise LoadError("Only base64 encoded data URIs are supported")


def compute_target_size(width: int, height: int, max_size: int = MAX_TEXTURE_SIZE) -> Tuple[int, int]:
    """Fit ``width x height`` inside ``max_size`` keeping the aspect ratio.

    Images within the bound keep their size.  Larger ones are scaled by
    ``min(max_size / width, max_size / height)`` and floored.
    """

    if width <= max_size and height <= max_size:
        return width, height
    ratio = min(max_size / width, max_size / height)
    return max(1, math.floor(width * ratio)), max(1, math.floor(height * ratio))


def _open_image(source: ImageSource) -> Image.Image:
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, str) and source.startswith(_DATA_URI_PREFIX):
        data = decode_data_uri(source)
    elif isinstance(source, (str, Path)):
        try:
            data = Path(source).read_bytes()
        except OSError as exc:
            raise LoadError(f"Cannot read image file {source}: {exc}") from exc
    elif isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
    else:
        raise LoadError(f"Unsupported image source type {type(source).__name__}")

    if not data:
        raise LoadError("Image source is empty")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise LoadError(f"Failed to load image: {exc}") from exc
    return image


def _to_eight_bit(image: Image.Image) -> Image.Image:
    """Rescale high bit depth grayscale modes to ``L``.

    Pillow clips ``I;16``/``I``/``F`` samples to 255 when converting, so
    16 bit data is divided by 257 and float data is stretched over its own
    range first.
    """

    if image.mode in _SIXTEEN_BIT_MODES:
        samples = np.asarray(image, dtype=np.float64) / 257.0
    elif image.mode == "F":
        samples = np.asarray(image, dtype=np.float64)
        low = float(samples.min()) if samples.size else 0.0
        high = float(samples.max()) if samples.size else 0.0
        if high > low:
            samples = (samples - low) / (high - low) * 255.0
    else:
        return image
    LOGGER.debug("Rescaling %s samples to 8 bit", image.mode)
    return Image.fromarray(np.clip(np.rint(samples), 0, 255).astype(np.uint8))


def decode_image(source: ImageSource, *, max_size: int = MAX_TEXTURE_SIZE) -> PixelBuffer:
    """Decode *source* into an RGBA :class:`PixelBuffer` no larger than *max_size*."""

    if isinstance(source, PixelBuffer):
        image = source.to_image()
    else:
        image = _open_image(source)
        try:
            image = ImageOps.exif_transpose(image)
        except (OSError, ValueError, SyntaxError) as exc:  # corrupt EXIF blocks
            LOGGER.debug("Ignoring unreadable EXIF orientation: %s", exc)
    rgba = _to_eight_bit(image).convert("RGBA")

    width, height = rgba.size
    if width == 0 or height == 0:
        raise LoadError(f"Image has no pixels ({width}x{height})")
    target = compute_target_size(width, height, max_size)
    if target != (width, height):
        LOGGER.debug("Resizing source from %dx%d to %dx%d", width, height, *target)
        rgba = rgba.resize(target, resample=Image.Resampling.BILINEAR)
    return PixelBuffer.from_image(rgba)


__all__ = [
    "compute_target_size",
    "decode_data_uri",
    "decode_image",
    "ensure_image_content_type",
]
