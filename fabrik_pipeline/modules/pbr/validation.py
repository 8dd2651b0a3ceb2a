"""Structural checks and quality reporting for generated texture sets."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import logging
import numpy as np

from ...core.config import TEXTURE_ORDER
from .buffers import PixelBuffer

LOGGER = logging.getLogger("fabrik_pipeline.pbr.validation")

GRAYSCALE_MAPS = ("ao", "roughness", "metallic")

# Byte quantisation moves each decoded axis by at most 0.5/255 * 2.
NORMAL_LENGTH_TOLERANCE = 0.02

VALIDATION_RULES = {
    "set": ["matching_dimensions"],
    "ao": ["grayscale_channels", "opaque"],
    "roughness": ["grayscale_channels", "opaque"],
    "metallic": ["grayscale_channels", "opaque"],
    "normal": ["unit_length", "opaque"],
}


@dataclass
class ValidationReport:
    issues: Dict[str, List[str]]

    def has_critical_issues(self) -> bool:
        return any(self.issues.values())

    def passes_all_critical(self) -> bool:
        return not self.has_critical_issues()

    def items(self):
        return self.issues.items()


def decode_normals(buffer: PixelBuffer) -> np.ndarray:
    """Map encoded normal bytes back to vectors in ``[-1, 1]``."""

    return buffer.pixels[..., :3].astype(np.float64) / 255.0 * 2.0 - 1.0


def _is_grayscale(buffer: PixelBuffer) -> bool:
    rgb = buffer.pixels[..., :3]
    return bool(np.array_equal(rgb[..., 0], rgb[..., 1]) and np.array_equal(rgb[..., 1], rgb[..., 2]))


def _is_opaque(buffer: PixelBuffer) -> bool:
    return bool(np.all(buffer.pixels[..., 3] == 255))


def validate_texture_set(maps: Mapping[str, PixelBuffer]) -> ValidationReport:
    """Check the structural guarantees every generated set must satisfy."""

    issues: Dict[str, List[str]] = {name: [] for name in VALIDATION_RULES}

    sizes = {name: maps[name].size for name in TEXTURE_ORDER if name in maps}
    missing = [name for name in TEXTURE_ORDER if name not in maps]
    if missing:
        issues["set"].append(f"missing_maps:{','.join(missing)}")
    if len(set(sizes.values())) > 1:
        issues["set"].append("matching_dimensions")

    for name in GRAYSCALE_MAPS:
        buffer = maps.get(name)
        if buffer is None:
            continue
        if not _is_grayscale(buffer):
            issues[name].append("grayscale_channels")
        if not _is_opaque(buffer):
            issues[name].append("opaque")

    normal = maps.get("normal")
    if normal is not None:
        lengths = np.linalg.norm(decode_normals(normal), axis=-1)
        worst = float(np.max(np.abs(lengths - 1.0)))
        if worst > NORMAL_LENGTH_TOLERANCE:
            issues["normal"].append("unit_length")
            LOGGER.debug("Normal length deviation %.4f exceeds %.4f", worst, NORMAL_LENGTH_TOLERANCE)
        if not _is_opaque(normal):
            issues["normal"].append("opaque")

    return ValidationReport(issues=issues)


def generate_quality_report(maps: Mapping[str, PixelBuffer]) -> Dict[str, Dict[str, float]]:
    """Summarise the value distribution of each map."""

    report: Dict[str, Dict[str, float]] = {}
    for name, buffer in maps.items():
        values = buffer.pixels[..., :3].astype(np.float64)
        report[name] = {
            "min": float(values.min()),
            "max": float(values.max()),
            "mean": float(values.mean()),
            "std": float(values.std()),
        }
    return report


def log_validation_issues(report: ValidationReport) -> None:
    failed: Iterable[str] = (
        f"{name}:{issue}" for name, found in report.items() for issue in found
    )
    joined = ", ".join(failed)
    if joined:
        LOGGER.warning("Texture set validation found issues: %s", joined)
    else:
        LOGGER.debug("Texture set validation passed")


__all__ = [
    "ValidationReport",
    "decode_normals",
    "generate_quality_report",
    "log_validation_issues",
    "validate_texture_set",
]
