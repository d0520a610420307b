"""Render controller: normalize, synthesize and deliver one text."""

from __future__ import annotations

import logging
import time

from tts_cli.config import RenderRequest
from tts_cli.errors import AudioIOError
from tts_cli.normalizer import normalize
from tts_cli.output import dispatch, resolve_target
from tts_cli.synthesizer import Synthesizer

logger = logging.getLogger(__name__)


class RenderPipeline:
    """Turns a single :class:`RenderRequest` into audio, end to end.

    Each call owns its engine session and PCM buffer; nothing is kept
    between calls and failures are never retried.
    """

    def render(self, request: RenderRequest) -> None:
        """Speak *request* on the device or save it to its output file.

        Raises:
            OutputError: The output file extension is not supported. This is
                detected before anything is synthesized or written.
            SynthesisError: The voice is unknown or the engine failed.
            AudioIOError: Playback, file writing or MP3 encoding failed.
        """
        config = request.config
        target = resolve_target(config.output_path)

        text = normalize(request.text, config.date_time_format)
        logger.debug("Normalized text: %s", text[:80])

        started = time.perf_counter()
        buffer = Synthesizer(config).synthesize(text)
        logger.info(
            "Synthesized %.2fs of audio in %.2fs",
            buffer.duration, time.perf_counter() - started,
        )

        try:
            dispatch(buffer, target)
        except OSError as exc:
            raise AudioIOError(str(exc)) from exc


def render(request: RenderRequest) -> None:
    """Render *request* with a fresh :class:`RenderPipeline`."""
    RenderPipeline().render(request)
