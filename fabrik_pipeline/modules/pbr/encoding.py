"""Lossless serialisation of generated maps."""
from __future__ import annotations

import io

from ...core.config import OUTPUT_FORMAT
from ...core.errors import EncodeError
from .buffers import PixelBuffer


def encode_png(buffer: PixelBuffer, *, format: str = OUTPUT_FORMAT) -> bytes:
    """Encode *buffer* to a lossless raster so decoding returns the same pixels."""

    stream = io.BytesIO()
    try:
        buffer.to_image().save(stream, format=format)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeError(f"Failed to encode {buffer.width}x{buffer.height} buffer as {format}: {exc}") from exc
    return stream.getvalue()


__all__ = ["encode_png"]
