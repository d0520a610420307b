"""Voice synthesis using pyttsx3 (offline, system TTS engines)."""

from __future__ import annotations

import contextlib
import logging
import tempfile
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import pyttsx3

from tts_cli.config import RenderConfig
from tts_cli.errors import SynthesisError
from tts_cli.pcm import SUPPORTED_BITS, SUPPORTED_CHANNELS, PcmBuffer

logger = logging.getLogger(__name__)

# pyttsx3's rate is words per minute; -10..10 follows the SAPI curve
# where each end is a factor of three away from the default rate.
_RATE_STEP_BASE = 3.0
_RATE_STEPS = 10

# Default words per minute of the sapi5 and espeak drivers. The engine's
# current rate is not used as the base since a reused engine keeps it.
_DEFAULT_WPM = 200


@dataclass(frozen=True)
class VoiceInfo:
    """An installed voice as reported by the engine."""

    id: str
    name: str
    languages: str = ""
    gender: str | None = None
    age: int | str | None = None

    @property
    def is_female(self) -> bool:
        # SAPI reports "Female", NSSpeech "VoiceGenderFemale", espeak "female"
        return "female" in str(self.gender or "").lower()

    @property
    def is_adult(self) -> bool:
        if self.age in (None, ""):
            return True
        try:
            return 18 <= int(self.age) < 65
        except (TypeError, ValueError):
            return "adult" in str(self.age).lower()


def _to_voice_info(voice) -> VoiceInfo:
    return VoiceInfo(
        id=str(voice.id),
        name=str(voice.name or voice.id),
        languages=str(voice.languages),
        gender=getattr(voice, "gender", None),
        age=getattr(voice, "age", None),
    )


def _installed_voices(engine: pyttsx3.Engine) -> list[VoiceInfo]:
    try:
        return [_to_voice_info(v) for v in engine.getProperty("voices")]
    except (RuntimeError, OSError) as exc:
        raise SynthesisError(f"Cannot list installed voices: {exc}") from exc


@contextlib.contextmanager
def engine_session() -> Iterator[tuple[pyttsx3.Engine, Path]]:
    """Acquire the engine and a scratch output directory for one call.

    The engine is stopped and the scratch output removed on every exit
    path, leaving the engine reusable.
    """
    try:
        engine = pyttsx3.init()
    except (RuntimeError, OSError, ImportError) as exc:
        raise SynthesisError(f"Speech engine unavailable: {exc}") from exc
    try:
        with tempfile.TemporaryDirectory(prefix="tts-cli-") as scratch:
            yield engine, Path(scratch)
    finally:
        engine.stop()


def validate_output_format(sample_rate: int, bits_per_sample: int, channels: int) -> None:
    """Fail fast if the pinned output format cannot be produced."""
    if sample_rate <= 0:
        raise SynthesisError(f"Invalid output sample rate: {sample_rate} Hz")
    if bits_per_sample not in SUPPORTED_BITS:
        raise SynthesisError(
            f"Unsupported output bit depth: {bits_per_sample} "
            f"(expected one of {', '.join(map(str, SUPPORTED_BITS))})"
        )
    if channels not in SUPPORTED_CHANNELS:
        raise SynthesisError(f"Unsupported output channel count: {channels}")


class Synthesizer:
    """Wraps pyttsx3 to render text into a PCM buffer."""

    def __init__(self, config: RenderConfig | None = None) -> None:
        self._config = config or RenderConfig()
        validate_output_format(
            self._config.sample_rate,
            self._config.bits_per_sample,
            self._config.channels,
        )

    def synthesize(self, text: str) -> PcmBuffer:
        """Render *text* synchronously (blocks until done) into PCM.

        Raises:
            SynthesisError: Unknown voice, engine failure, or engine output
                that cannot be converted to the configured format.
        """
        with engine_session() as (engine, scratch):
            self._apply_config(engine)
            raw_path = scratch / "speech.wav"
            try:
                engine.save_to_file(text, str(raw_path))
                engine.runAndWait()
            except (RuntimeError, OSError) as exc:
                raise SynthesisError(f"Speech engine failed: {exc}") from exc
            native = self._read_engine_output(raw_path)

        logger.debug(
            "Engine produced %d frames at %d Hz/%d bit/%d ch",
            native.frame_count, *native.format,
        )
        return native.convert(
            self._config.sample_rate,
            self._config.bits_per_sample,
            self._config.channels,
        )

    def _apply_config(self, engine: pyttsx3.Engine) -> None:
        voices = _installed_voices(engine)

        default = next((v for v in voices if v.is_female and v.is_adult), None)
        if default is not None:
            engine.setProperty("voice", default.id)

        if self._config.voice_name:
            engine.setProperty("voice", self._find_voice(voices).id)

        engine.setProperty("volume", self._config.loudness / 100.0)
        engine.setProperty(
            "rate",
            int(round(_DEFAULT_WPM * _RATE_STEP_BASE ** (self._config.rate / _RATE_STEPS))),
        )

    def _find_voice(self, voices: list[VoiceInfo]) -> VoiceInfo:
        wanted = self._config.voice_name
        for voice in voices:
            if wanted in (voice.name, voice.id):
                logger.debug("Using voice %s (%s)", voice.name, voice.id)
                return voice
        installed = ", ".join(v.name for v in voices) or "none"
        raise SynthesisError(
            f'Voice "{wanted}" is not installed. Available voices: {installed}'
        )

    @staticmethod
    def _read_engine_output(path: Path) -> PcmBuffer:
        if not path.exists() or path.stat().st_size == 0:
            raise SynthesisError("Speech engine produced no audio")
        try:
            return PcmBuffer.from_wav(path)
        except (wave.Error, EOFError, ValueError) as exc:
            # e.g. drivers that write AIFF regardless of the file extension
            raise SynthesisError(
                f"Speech engine output is not PCM WAV; cannot pin the output format: {exc}"
            ) from exc

    def list_voices(self) -> list[VoiceInfo]:
        """Return available voices on this system."""
        with engine_session() as (engine, _scratch):
            return _installed_voices(engine)
