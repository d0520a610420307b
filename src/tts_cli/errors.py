"""Error types raised by the speech-rendering pipeline."""

from __future__ import annotations


class RenderError(Exception):
    """Base class for every failure surfaced to the CLI."""


class ConfigError(RenderError):
    """Invalid or missing input, detected before the pipeline runs."""


class SynthesisError(RenderError):
    """The speech engine could not produce audio (unknown voice, engine failure)."""


class OutputError(RenderError):
    """The requested output target is not supported."""


class AudioIOError(RenderError):
    """Writing, encoding or playing the audio failed."""
