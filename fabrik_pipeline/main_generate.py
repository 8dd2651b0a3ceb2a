"""Command line interface for single-image PBR texture generation."""
from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Dict, Optional, Sequence

from .core import config
from .core.errors import PipelineError
from .core.utils_io import save_texture_set

LOGGER = logging.getLogger("fabrik_pipeline.main_generate")


class BoolAction(argparse.Action):
    """Robust boolean flag parser supporting affirmative and negative forms."""

    def __call__(self, parser, namespace, values, option_string=None):  # type: ignore[override]
        if values is None:
            setattr(namespace, self.dest, True)
            return
        normalized = str(values).strip().lower()
        if normalized in {"1", "y", "yes", "t", "true", "on"}:
            setattr(namespace, self.dest, True)
        elif normalized in {"0", "n", "no", "f", "false", "off"}:
            setattr(namespace, self.dest, False)
        else:
            raise argparse.ArgumentTypeError(f"Invalid boolean for {option_string}: {values!r}")


def _configure_logging(log_path: Path, *, verbose: bool = False) -> None:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S")
    file_handler = logging.FileHandler(log_path, encoding="utf-8", delay=True)
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=[file_handler, console_handler])


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a PBR texture set from a single photograph")
    parser.add_argument("image", type=Path, help="Source image file")
    parser.add_argument("--output", type=Path, default=config.PATH_OUTPUT, help="Directory to write the texture maps")
    parser.add_argument("--ao", type=float, default=1.0, help="Ambient occlusion intensity (nominal 0-2)")
    parser.add_argument("--roughness", type=float, default=1.0, help="Roughness intensity (nominal 0-2)")
    parser.add_argument("--metallic", type=float, default=0.5, help="Metallic intensity (nominal 0-1)")
    parser.add_argument("--normal-strength", type=float, default=1.0, help="Normal map strength (nominal 0-2)")
    parser.add_argument("--max-size", type=int, default=config.MAX_TEXTURE_SIZE, help="Largest output dimension")
    parser.add_argument("--threads", type=int, default=config.THREADS, help="Number of worker threads")
    parser.add_argument(
        "--parallel",
        nargs="?",
        default=config.PARALLEL_GENERATION,
        action=BoolAction,
        help="Run the map generators concurrently (default: true)",
    )
    parser.add_argument(
        "--no-parallel",
        dest="parallel",
        action="store_false",
        help="Run the map generators one after another",
    )
    parser.add_argument("--prefix", default=config.FILENAME_PREFIX, help="Filename prefix for the written maps")
    parser.add_argument("--timestamp", action="store_true", help="Append a timestamp to every filename")
    parser.add_argument("--validate", action="store_true", help="Validate the generated set and log findings")
    parser.add_argument("--log-file", type=Path, default=None, help="Log file path")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_runtime_config(args: argparse.Namespace) -> Dict[str, object]:
    overrides: Dict[str, object] = {
        "PATH_OUTPUT": args.output.resolve(),
        "MAX_TEXTURE_SIZE": args.max_size,
        "THREADS": args.threads,
        "PARALLEL_GENERATION": args.parallel,
        "FILENAME_PREFIX": args.prefix,
        "VALIDATE_OUTPUT": args.validate,
    }
    if args.log_file is not None:
        overrides["LOG_FILE"] = args.log_file.resolve()
    return config.build_config(overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    cfg = build_runtime_config(args)
    _configure_logging(Path(cfg["LOG_FILE"]), verbose=args.verbose)  # type: ignore[arg-type]

    from .modules.pbr import GenerationParameters, generate_texture_set

    params = GenerationParameters(
        ao_intensity=args.ao,
        roughness_intensity=args.roughness,
        metallic_intensity=args.metallic,
        normal_strength=args.normal_strength,
    )
    LOGGER.info("Generating texture set for %s with %s", args.image, params)
    try:
        texture_set = generate_texture_set(args.image, params, cfg=cfg)
    except PipelineError as exc:
        LOGGER.error("Failed to generate textures for %s: %s", args.image, exc)
        return 1

    timestamp = str(int(time.time() * 1000)) if args.timestamp else None
    written = save_texture_set(
        texture_set,
        Path(cfg["PATH_OUTPUT"]),  # type: ignore[arg-type]
        prefix=str(cfg["FILENAME_PREFIX"]),
        timestamp=timestamp,
    )
    for map_name, path in written.items():
        LOGGER.info("%s -> %s", map_name, path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
