"""Caller-side bookkeeping for overlapping generation requests."""
from __future__ import annotations

import concurrent.futures
import itertools
import logging
import threading
from typing import Mapping, Optional

from ...core.errors import PipelineError
from ...core.utils_parallel import create_thread_pool
from .buffers import TextureSet
from .decoding import ImageSource
from .parameters import GenerationParameters
from .pipeline import generate_texture_set

LOGGER = logging.getLogger("fabrik_pipeline.pbr.session")


class GenerationSession:
    """Run generations in the background and publish only the newest result.

    Each :meth:`submit` supersedes every earlier request.  A superseded run
    still finishes, but its texture set is dropped instead of published.  A
    failed run leaves the previously published set in :attr:`current`.
    """

    def __init__(self, cfg: Optional[Mapping[str, object]] = None, *, max_workers: int = 2) -> None:
        self.config = dict(cfg) if cfg else None
        self._executor = create_thread_pool(max_workers=max_workers)
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._latest_token = 0
        self._current: Optional[TextureSet] = None
        self.last_error: Optional[PipelineError] = None

    @property
    def current(self) -> Optional[TextureSet]:
        """The most recently published texture set, if any."""

        with self._lock:
            return self._current

    @property
    def latest_token(self) -> int:
        with self._lock:
            return self._latest_token

    def is_current(self, token: int) -> bool:
        with self._lock:
            return token == self._latest_token

    def submit(
        self,
        source: ImageSource,
        params: Optional[GenerationParameters] = None,
    ) -> "concurrent.futures.Future[Optional[TextureSet]]":
        """Start a generation; the future resolves to the set, or ``None`` if superseded."""

        with self._lock:
            token = next(self._tokens)
            self._latest_token = token
        LOGGER.debug("Submitted generation request %d", token)
        return self._executor.submit(self._run, token, source, params)

    def _run(
        self,
        token: int,
        source: ImageSource,
        params: Optional[GenerationParameters],
    ) -> Optional[TextureSet]:
        try:
            texture_set = generate_texture_set(source, params, cfg=self.config)
        except PipelineError as exc:
            with self._lock:
                if token == self._latest_token:
                    self.last_error = exc
            LOGGER.warning("Generation request %d failed; keeping previous texture set", token)
            raise
        with self._lock:
            if token != self._latest_token:
                LOGGER.info("Discarding superseded generation request %d", token)
                return None
            self._current = texture_set
            self.last_error = None
        return texture_set

    def clear(self) -> None:
        """Forget the published set and supersede anything in flight."""

        with self._lock:
            self._latest_token = next(self._tokens)
            self._current = None
            self.last_error = None

    def close(self, *, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "GenerationSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
