"""Unit tests for the ambient occlusion and height generators."""
from __future__ import annotations

import pytest

np = pytest.importorskip("numpy")

from fabrik_pipeline.modules.geometry_maps import ambient_occlusion, height_map
from fabrik_pipeline.modules.pbr._image_features import luminance_field
from fabrik_pipeline.modules.pbr.buffers import PixelBuffer
from fabrik_pipeline.modules.pbr.parameters import GenerationParameters


def _buffer(rgb: np.ndarray) -> PixelBuffer:
    alpha = np.full(rgb.shape[:2], 255, dtype=np.uint8)
    return PixelBuffer(np.dstack([rgb.astype(np.uint8), alpha]))


def _random_buffer(width: int, height: int, seed: int = 7) -> PixelBuffer:
    rng = np.random.default_rng(seed)
    return _buffer(rng.integers(0, 256, size=(height, width, 3)))


def _reference_ao(pixels: PixelBuffer, intensity: float) -> np.ndarray:
    rgb = pixels.pixels[..., :3].astype(float)
    luma = 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
    height, width = luma.shape
    out = np.zeros((height, width))
    for y in range(height):
        for x in range(width):
            total = 0.0
            count = 0
            for dy in range(-2, 3):
                for dx in range(-2, 3):
                    ny, nx = y + dy, x + dx
                    if 0 <= nx < width and 0 <= ny < height:
                        total += abs(luma[y, x] - luma[ny, nx])
                        count += 1
            contrast = total / count
            out[y, x] = np.rint(min(max(255 - contrast * intensity * 2 - (255 - luma[y, x]) * 0.3, 0), 255))
    return out


def test_ao_matches_windowed_reference() -> None:
    pixels = _random_buffer(7, 6)
    params = GenerationParameters(ao_intensity=0.8)
    ao = ambient_occlusion.generate(pixels, luminance_field(pixels), params)
    expected = _reference_ao(pixels, 0.8)
    np.testing.assert_array_equal(ao.pixels[..., 0], expected)


def test_ao_corner_uses_in_bounds_subset_only() -> None:
    rgb = np.zeros((6, 6, 3), dtype=np.uint8)
    rgb[:3, :3] = 200
    rgb[0, 0] = 100
    pixels = _buffer(rgb)
    ao = ambient_occlusion.generate(pixels, params=GenerationParameters(ao_intensity=1.0))

    # The 3x3 in-bounds block holds the corner (100) and eight pixels at 200.
    contrast = 8 * 100.0 / 9
    expected = 255 - contrast * 2 - (255 - 100) * 0.3
    assert ao.pixels[0, 0, 0] == int(np.rint(expected))


def test_ao_is_grayscale_and_opaque() -> None:
    ao = ambient_occlusion.generate(_random_buffer(9, 5))
    rgb = ao.pixels[..., :3]
    assert (rgb[..., 0] == rgb[..., 1]).all() and (rgb[..., 1] == rgb[..., 2]).all()
    assert (ao.pixels[..., 3] == 255).all()


def test_ao_intensity_never_brightens() -> None:
    gradient = np.tile(np.linspace(60, 200, 8), (8, 1))
    pixels = _buffer(np.dstack([gradient] * 3))
    luma = luminance_field(pixels)
    previous = None
    for intensity in (0.0, 0.5, 1.0, 1.5, 2.0):
        current = ambient_occlusion.generate(pixels, luma, GenerationParameters(ao_intensity=intensity)).pixels[..., 0]
        if previous is not None:
            assert (current.astype(int) <= previous.astype(int)).all()
        previous = current


def test_ao_uniform_image_reduces_to_bias_term() -> None:
    pixels = _buffer(np.full((5, 5, 3), (100, 150, 200), dtype=np.uint8))
    ao = ambient_occlusion.generate(pixels)
    luma = 0.299 * 100 + 0.587 * 150 + 0.114 * 200
    assert (ao.pixels[..., 0] == int(np.rint(255 - (255 - luma) * 0.3))).all()


def test_height_field_is_normalised_luminance() -> None:
    pixels = _buffer(np.array([[[0, 0, 0], [255, 255, 255]]], dtype=np.uint8))
    field = height_map.height_field(luminance_field(pixels))
    np.testing.assert_allclose(field, [[0.0, 1.0]], atol=1e-9)
