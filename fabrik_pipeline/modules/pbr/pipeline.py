"""Primary orchestration for texture set generation."""
from __future__ import annotations

import importlib
import logging
import time
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import numpy as np

from ...core import config
from ...core.errors import PipelineError, ProcessingError
from ...core.utils_parallel import limited_threads, run_parallel, run_sequential
from ._image_features import luminance_field
from .buffers import PixelBuffer, TextureSet
from .decoding import ImageSource, decode_image
from .encoding import encode_png
from .parameters import DEFAULT_PARAMETERS, GenerationParameters
from .validation import generate_quality_report, log_validation_issues, validate_texture_set

LOGGER = logging.getLogger("fabrik_pipeline.pbr.pipeline")

GeneratorFn = Callable[[PixelBuffer, np.ndarray, GenerationParameters], PixelBuffer]


def load_map_generators(mapping: Mapping[str, Mapping[str, str]]) -> Dict[str, GeneratorFn]:
    """Resolve ``{category: {map: module path}}`` into ``{map: generate}``."""

    generators: Dict[str, GeneratorFn] = {}
    for category, entries in mapping.items():
        for name, module_path in entries.items():
            module = importlib.import_module(module_path)
            generator = getattr(module, "generate", None)
            if generator is None:
                raise AttributeError(f"Module {module_path} does not expose a generate() function")
            LOGGER.debug("Registered %s generator %s from %s", category, name, module_path)
            generators[name] = generator
    return generators


def _resolve_config(cfg: Optional[Mapping[str, object]]) -> Dict[str, object]:
    return config.build_config(cfg)


def generate_maps(
    pixels: PixelBuffer,
    params: GenerationParameters = DEFAULT_PARAMETERS,
    *,
    cfg: Optional[Mapping[str, object]] = None,
) -> Dict[str, PixelBuffer]:
    """Compute albedo and the four derived maps from a decoded buffer.

    Pure and synchronous: the same buffer and parameters always give the
    same maps.  Generators only read *pixels* and the shared luminance field,
    so they run one per worker when ``PARALLEL_GENERATION`` is set.
    """

    settings = _resolve_config(cfg)
    outside = params.out_of_range()
    if outside:
        LOGGER.warning("Parameters outside nominal range (used as given): %s", ", ".join(outside))

    generators = load_map_generators(settings["MAP_TYPES"])  # type: ignore[arg-type]
    luma = luminance_field(pixels)

    def _run(entry: Tuple[str, GeneratorFn]) -> Tuple[str, PixelBuffer]:
        name, generator = entry
        start = time.perf_counter()
        result = generator(pixels, luma, params)
        if result.size != pixels.size:
            raise ProcessingError(f"{name} map is {result.size}, expected {pixels.size}")
        LOGGER.debug("Generated %s map in %.3fs", name, time.perf_counter() - start)
        return name, result

    entries: List[Tuple[str, GeneratorFn]] = list(generators.items())
    threads = int(settings["THREADS"])  # type: ignore[arg-type]
    if settings["PARALLEL_GENERATION"] and len(entries) > 1:
        with limited_threads(threads):
            results = run_parallel(_run, entries, max_workers=threads)
    else:
        results = run_sequential(_run, entries)

    maps: Dict[str, PixelBuffer] = {"albedo": pixels}
    maps.update(results)
    return {name: maps[name] for name in config.TEXTURE_ORDER if name in maps}


def encode_maps(maps: Mapping[str, PixelBuffer], *, format: str = config.OUTPUT_FORMAT) -> Dict[str, bytes]:
    """Encode every map, failing as a whole on the first error."""

    return {name: encode_png(buffer, format=format) for name, buffer in maps.items()}


def generate_texture_set(
    source: ImageSource,
    params: Optional[GenerationParameters] = None,
    *,
    cfg: Optional[Mapping[str, object]] = None,
) -> TextureSet:
    """Decode *source*, derive every map and return the encoded texture set.

    Any failure aborts the whole generation; no partial set is returned.
    """

    settings = _resolve_config(cfg)
    params = params or DEFAULT_PARAMETERS
    start = time.perf_counter()
    try:
        pixels = decode_image(source, max_size=int(settings["MAX_TEXTURE_SIZE"]))  # type: ignore[arg-type]
        maps = generate_maps(pixels, params, cfg=settings)
        encoded = encode_maps(maps, format=str(settings["OUTPUT_FORMAT"]))
        texture_set = TextureSet(maps=maps, encoded=encoded)
    except PipelineError as exc:
        LOGGER.error("Texture generation aborted: %s", exc)
        raise

    if settings["VALIDATE_OUTPUT"]:
        log_validation_issues(validate_texture_set(texture_set.maps))
        LOGGER.debug("Texture quality report: %s", generate_quality_report(texture_set.maps))

    width, height = texture_set.size
    LOGGER.info("Generated %dx%d texture set in %.2fs", width, height, time.perf_counter() - start)
    return texture_set


__all__ = [
    "encode_maps",
    "generate_maps",
    "generate_texture_set",
    "load_map_generators",
]
