"""Integration tests for texture set generation."""
from __future__ import annotations

import io

import pytest

np = pytest.importorskip("numpy")
from PIL import Image

from fabrik_pipeline.core import config
from fabrik_pipeline.core.errors import EncodeError, LoadError, ProcessingError
from fabrik_pipeline.modules.pbr import pipeline
from fabrik_pipeline.modules.pbr.buffers import PixelBuffer
from fabrik_pipeline.modules.pbr.decoding import decode_image
from fabrik_pipeline.modules.pbr.parameters import GenerationParameters
from fabrik_pipeline.modules.pbr.validation import (
    ValidationReport,
    generate_quality_report,
    log_validation_issues,
    validate_texture_set,
)

MAP_NAMES = ("albedo", "ao", "roughness", "metallic", "normal")


def _photo_bytes(width: int = 24, height: int = 16, seed: int = 5) -> bytes:
    rng = np.random.default_rng(seed)
    rgb = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    stream = io.BytesIO()
    Image.fromarray(rgb, mode="RGB").save(stream, format="PNG")
    return stream.getvalue()


def _checkerboard(size: int = 4) -> Image.Image:
    image = Image.new("RGB", (size, size))
    for y in range(size):
        for x in range(size):
            image.putpixel((x, y), (255, 255, 255) if (x + y) % 2 else (0, 0, 0))
    return image


@pytest.fixture(scope="module")
def texture_set():
    return pipeline.generate_texture_set(_photo_bytes())


def test_all_maps_share_source_dimensions(texture_set) -> None:
    assert tuple(texture_set.maps) == MAP_NAMES
    for name in MAP_NAMES:
        assert texture_set.maps[name].size == (24, 16)
        assert Image.open(io.BytesIO(texture_set.encoded[name])).size == (24, 16)


def test_albedo_is_the_resized_source(texture_set) -> None:
    source = decode_image(_photo_bytes())
    np.testing.assert_array_equal(texture_set.albedo.pixels, source.pixels)


def test_scalar_maps_are_grayscale(texture_set) -> None:
    for name in ("ao", "roughness", "metallic"):
        rgb = texture_set.maps[name].pixels[..., :3]
        assert (rgb[..., 0] == rgb[..., 1]).all() and (rgb[..., 1] == rgb[..., 2]).all(), name


def test_generated_set_passes_validation(texture_set) -> None:
    report = validate_texture_set(texture_set.maps)
    assert report.passes_all_critical(), report.issues
    quality = generate_quality_report(texture_set.maps)
    assert set(quality) == set(MAP_NAMES)


def test_validation_issues_are_logged_per_map(caplog) -> None:
    report = ValidationReport(issues={"ao": ["opaque"], "normal": ["unit_length", "opaque"], "metallic": []})
    assert dict(report.items())["normal"] == ["unit_length", "opaque"]
    with caplog.at_level("WARNING", logger="fabrik_pipeline.pbr.validation"):
        log_validation_issues(report)
    assert "ao:opaque, normal:unit_length, normal:opaque" in caplog.text


def test_encoded_maps_decode_to_identical_pixels(texture_set) -> None:
    for name in MAP_NAMES:
        decoded = decode_image(texture_set.encoded[name])
        np.testing.assert_array_equal(decoded.pixels, texture_set.maps[name].pixels)


def test_data_uris_round_trip(texture_set) -> None:
    uris = texture_set.as_data_uris()
    assert all(uri.startswith("data:image/png;base64,") for uri in uris.values())
    np.testing.assert_array_equal(decode_image(uris["normal"]).pixels, texture_set.normal.pixels)


def test_material_bindings(texture_set) -> None:
    bindings = texture_set.material_bindings()
    assert set(bindings) == {"base_color", "ambient_occlusion", "roughness", "metalness", "normal"}
    assert bindings["metalness"] is texture_set.metallic


def test_generation_is_idempotent() -> None:
    params = GenerationParameters(ao_intensity=1.4, roughness_intensity=0.7, metallic_intensity=0.3, normal_strength=1.8)
    first = pipeline.generate_texture_set(_photo_bytes(seed=9), params)
    second = pipeline.generate_texture_set(_photo_bytes(seed=9), params)
    assert dict(first.encoded) == dict(second.encoded)


def test_parallel_and_sequential_runs_agree() -> None:
    source = _photo_bytes(seed=21)
    parallel = pipeline.generate_texture_set(source, cfg={"PARALLEL_GENERATION": True, "THREADS": 4})
    sequential = pipeline.generate_texture_set(source, cfg={"PARALLEL_GENERATION": False})
    assert dict(parallel.encoded) == dict(sequential.encoded)


def test_uniform_image_reduces_to_bias_terms() -> None:
    texture_set = pipeline.generate_texture_set(Image.new("RGB", (6, 5), (100, 150, 200)))
    luma = 0.299 * 100 + 0.587 * 150 + 0.114 * 200
    assert (texture_set.normal.pixels[..., :3] == (128, 128, 255)).all()
    assert (texture_set.ao.pixels[..., 0] == int(np.rint(255 - (255 - luma) * 0.3))).all()
    assert (texture_set.roughness.pixels[..., 0] == int(np.rint((255 - luma) * 0.3))).all()


def test_checkerboard_reads_occluded_and_rough_against_gray_control() -> None:
    params = GenerationParameters(ao_intensity=1.0, roughness_intensity=1.0, metallic_intensity=0.5, normal_strength=1.0)
    checker = pipeline.generate_texture_set(_checkerboard(), params)
    control = pipeline.generate_texture_set(Image.new("RGB", (4, 4), (128, 128, 128)), params)

    interior = (slice(1, 3), slice(1, 3))
    checker_ao = checker.ao.pixels[interior][..., 0].astype(int)
    control_ao = control.ao.pixels[interior][..., 0].astype(int)
    checker_rough = checker.roughness.pixels[interior][..., 0].astype(int)
    control_rough = control.roughness.pixels[interior][..., 0].astype(int)

    assert (checker_ao <= 5).all()
    assert (control_ao == 217).all()
    assert (checker_rough >= 170).all()
    assert (control_rough == 38).all()


def test_undecodable_source_aborts_generation() -> None:
    with pytest.raises(LoadError):
        pipeline.generate_texture_set(b"\x89PNG broken")


def test_encode_failure_returns_no_partial_set(monkeypatch) -> None:
    real_encode = pipeline.encode_png

    def flaky_encode(buffer, *, format="PNG"):
        if buffer.pixels[..., 2].mean() > 200:  # the normal map is mostly blue
            raise EncodeError("disk full")
        return real_encode(buffer, format=format)

    monkeypatch.setattr(pipeline, "encode_png", flaky_encode)
    with pytest.raises(EncodeError):
        pipeline.generate_texture_set(Image.new("RGB", (4, 4), (10, 10, 10)))


def test_generator_failure_propagates_from_worker(monkeypatch) -> None:
    real_loader = pipeline.load_map_generators

    def failing_loader(mapping):
        generators = real_loader(mapping)

        def broken(pixels, luma, params):
            raise ProcessingError("malformed buffer")

        generators["metallic"] = broken
        return generators

    monkeypatch.setattr(pipeline, "load_map_generators", failing_loader)
    with pytest.raises(ProcessingError):
        pipeline.generate_texture_set(Image.new("RGB", (4, 4)), cfg={"PARALLEL_GENERATION": True})


def test_wrong_sized_generator_output_is_a_processing_error(monkeypatch) -> None:
    def loader(mapping):
        return {"ao": lambda pixels, luma, params: PixelBuffer(np.zeros((1, 1, 4), dtype=np.uint8))}

    monkeypatch.setattr(pipeline, "load_map_generators", loader)
    with pytest.raises(ProcessingError):
        pipeline.generate_maps(PixelBuffer(np.zeros((3, 3, 4), dtype=np.uint8)))


def test_out_of_range_parameters_are_honoured(caplog) -> None:
    pixels = decode_image(Image.new("RGB", (3, 3), (100, 100, 100)))
    params = GenerationParameters(metallic_intensity=2.0)
    with caplog.at_level("WARNING", logger="fabrik_pipeline.pbr.pipeline"):
        maps = pipeline.generate_maps(pixels, params, cfg={"PARALLEL_GENERATION": False})
    assert (maps["metallic"].pixels[..., 0] == 200).all()
    assert "metallic_intensity" in caplog.text


def test_max_size_override_bounds_output() -> None:
    texture_set = pipeline.generate_texture_set(_photo_bytes(32, 16), cfg={"MAX_TEXTURE_SIZE": 8})
    assert texture_set.size == (8, 4)


def test_missing_generate_function_is_reported() -> None:
    with pytest.raises(AttributeError):
        pipeline.load_map_generators({"broken": {"cfg": "fabrik_pipeline.core.config"}})


def test_build_config_ignores_unknown_keys() -> None:
    cfg = config.build_config({"THREADS": 2, "UNKNOWN": True})
    assert cfg["THREADS"] == 2
    assert "UNKNOWN" not in cfg
    assert cfg["MAX_TEXTURE_SIZE"] == 1024


def test_parameters_from_mapping_accepts_camel_case() -> None:
    params = GenerationParameters.from_mapping({"aoIntensity": 0.2, "normal_strength": 3, "extra": 1})
    assert params == GenerationParameters(ao_intensity=0.2, normal_strength=3.0)
    assert params.out_of_range() == ["normal_strength"]
