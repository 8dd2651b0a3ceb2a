"""I/O helpers for exporting generated textures."""
from __future__ import annotations

import logging
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterator, Optional

if TYPE_CHECKING:  # pragma: no cover - typing only
    from ..modules.pbr.buffers import TextureSet


LOGGER = logging.getLogger("fabrik_pipeline.io")

_LOCK_REGISTRY: dict[Path, threading.Lock] = {}
_LOCK_REGISTRY_GUARD = threading.Lock()


def ensure_dir(path: Path) -> Path:
    """Ensure that *path* exists and return it."""

    path.mkdir(parents=True, exist_ok=True)
    return path


def _acquire_file_lock(target: Path) -> threading.Lock:
    """Return the process-wide lock guarding *target*, already acquired."""

    with _LOCK_REGISTRY_GUARD:
        lock = _LOCK_REGISTRY.get(target)
        if lock is None:
            lock = threading.Lock()
            _LOCK_REGISTRY[target] = lock
    lock.acquire()
    return lock


LOCK_TIMEOUT = 10.0


@contextmanager
def file_lock(path: Path, timeout: float = LOCK_TIMEOUT) -> Iterator[None]:
    """Context manager providing a lightweight file lock.

    Raises :class:`TimeoutError` when another writer still holds the lock
    file after *timeout* seconds; the foreign lock file is left in place.
    """

    temp_lock = path.with_suffix(path.suffix + ".lock")
    lock = _acquire_file_lock(temp_lock)
    deadline = time.monotonic() + timeout
    try:
        while True:
            try:
                fd = os.open(temp_lock, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
                os.close(fd)
                break
            except FileExistsError:
                if time.monotonic() >= deadline:
                    raise TimeoutError(f"Timed out after {timeout}s waiting for lock {temp_lock}") from None
                time.sleep(0.05)
    except BaseException:
        lock.release()
        raise
    try:
        yield
    finally:
        try:
            os.remove(temp_lock)
        except FileNotFoundError:
            pass
        lock.release()


class SafeFileManager:
    """Manage atomic file writes with automatic directory handling."""

    def __init__(self, base_dir: Path, lock_timeout: float = LOCK_TIMEOUT) -> None:
        self.base_dir = Path(base_dir)
        self.lock_timeout = lock_timeout
        ensure_dir(self.base_dir)

    def resolve(self, path: Path | str) -> Path:
        """Resolve *path* relative to :attr:`base_dir`."""

        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.base_dir / candidate
        ensure_dir(candidate.parent)
        return candidate

    def atomic_write(self, payload: bytes, path: Path | str) -> Path:
        """Write *payload* to *path* through a temporary file."""

        destination = self.resolve(path)
        temp_dir = destination.parent / ".tmp_textures"
        ensure_dir(temp_dir)
        temp_path = temp_dir / f"{destination.name}.tmp"
        with file_lock(destination, self.lock_timeout):
            temp_path.write_bytes(payload)
            os.replace(temp_path, destination)
        return destination


def export_texture(encoded: bytes, path: Path | str, base_dir: Optional[Path] = None) -> Path:
    """Persist one encoded texture to *path* without transforming it."""

    manager = SafeFileManager(base_dir or Path(path).resolve().parent)
    destination = manager.atomic_write(encoded, path)
    LOGGER.debug("Exported %d bytes to %s", len(encoded), destination)
    return destination


def texture_filename(prefix: str, map_name: str, timestamp: Optional[str] = None) -> str:
    """Return ``<prefix>_<map>[_<timestamp>].png``."""

    stem = f"{prefix}_{map_name}"
    if timestamp:
        stem = f"{stem}_{timestamp}"
    return f"{stem}.png"


def save_texture_set(
    texture_set: "TextureSet",
    directory: Path | str,
    *,
    prefix: str = "fabrik",
    timestamp: Optional[str] = None,
) -> Dict[str, Path]:
    """Write all five encoded maps of *texture_set* into *directory*."""

    manager = SafeFileManager(Path(directory))
    written: Dict[str, Path] = {}
    for map_name, payload in texture_set.encoded.items():
        written[map_name] = manager.atomic_write(payload, texture_filename(prefix, map_name, timestamp))
    LOGGER.info("Saved %d texture maps to %s", len(written), manager.base_dir)
    return written
