"""Configuration module for the material texture pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, MutableMapping, Optional


BASE_DIR = Path(__file__).resolve().parent.parent

PATH_OUTPUT = BASE_DIR / "textures"

MAX_TEXTURE_SIZE = 1024
OUTPUT_FORMAT = "PNG"
FILENAME_PREFIX = "fabrik"
THREADS = 4
PARALLEL_GENERATION = True
VALIDATE_OUTPUT = False

# Derived map generators, resolved with importlib.  Every module exposes
# ``generate(pixels, luma, params) -> PixelBuffer``.
MAP_TYPES: Dict[str, Dict[str, str]] = {
    "geometry": {
        "ao": "fabrik_pipeline.modules.geometry_maps.ambient_occlusion",
    },
    "surface": {
        "roughness": "fabrik_pipeline.modules.surface_maps.roughness_map",
        "metallic": "fabrik_pipeline.modules.surface_maps.metallic_map",
        "normal": "fabrik_pipeline.modules.surface_maps.normal_map",
    },
}

TEXTURE_ORDER = ("albedo", "ao", "roughness", "metallic", "normal")


@dataclass
class PipelineConfig:
    """Runtime configuration for texture set generation."""

    output_path: Path = PATH_OUTPUT
    max_texture_size: int = MAX_TEXTURE_SIZE
    output_format: str = OUTPUT_FORMAT
    filename_prefix: str = FILENAME_PREFIX
    threads: int = THREADS
    parallel: bool = PARALLEL_GENERATION
    validate_output: bool = VALIDATE_OUTPUT
    log_file: Path = BASE_DIR / "generation.log"
    map_types: Dict[str, Dict[str, str]] = field(
        default_factory=lambda: {category: dict(entries) for category, entries in MAP_TYPES.items()}
    )

    def as_dict(self) -> Dict[str, object]:
        """Return the configuration as a plain dictionary."""

        return {
            "PATH_OUTPUT": self.output_path,
            "MAX_TEXTURE_SIZE": self.max_texture_size,
            "OUTPUT_FORMAT": self.output_format,
            "FILENAME_PREFIX": self.filename_prefix,
            "THREADS": self.threads,
            "PARALLEL_GENERATION": self.parallel,
            "VALIDATE_OUTPUT": self.validate_output,
            "LOG_FILE": self.log_file,
            "MAP_TYPES": self.map_types,
        }


def build_config(overrides: Optional[Mapping[str, object]] = None) -> Dict[str, object]:
    """Create a configuration dictionary with optional overrides."""

    config = PipelineConfig()
    if overrides:
        mutable: MutableMapping[str, object] = config.as_dict()
        for key, value in overrides.items():
            if key in mutable:
                mutable[key] = value
        return dict(mutable)
    return config.as_dict()
