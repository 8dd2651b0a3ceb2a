"""Single-image PBR texture set generation."""
from __future__ import annotations

from .buffers import PixelBuffer, TextureSet
from .decoding import compute_target_size, decode_image, ensure_image_content_type
from .encoding import encode_png
from .parameters import DEFAULT_PARAMETERS, GenerationParameters
from .pipeline import generate_maps, generate_texture_set
from .session import GenerationSession

__all__ = [
    "DEFAULT_PARAMETERS",
    "GenerationParameters",
    "GenerationSession",
    "PixelBuffer",
    "TextureSet",
    "compute_target_size",
    "decode_image",
    "encode_png",
    "ensure_image_content_type",
    "generate_maps",
    "generate_texture_set",
]
