"""Exception types raised by the material generation pipeline."""
from __future__ import annotations


class PipelineError(Exception):
    """Base class for every failure surfaced by the pipeline."""


class LoadError(PipelineError):
    """The source could not be decoded as an image."""


class ProcessingError(PipelineError):
    """An internal buffer invariant was violated during generation."""


class EncodeError(PipelineError):
    """A computed map could not be serialised to the output raster format."""


__all__ = ["EncodeError", "LoadError", "PipelineError", "ProcessingError"]
