"""Route rendered audio to the sound device, a WAV file or an MP3 file."""

from __future__ import annotations

import enum
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Union

from tts_cli.errors import AudioIOError, OutputError
from tts_cli.pcm import PcmBuffer

logger = logging.getLogger(__name__)

FFMPEG = "ffmpeg"

# LAME VBR quality 1 ("-V 1"), the high-quality VBR tier
MP3_VBR_QUALITY = 1

# Sample rates an MPEG-1/2/2.5 layer III stream can carry
MP3_SAMPLE_RATES = (8000, 11025, 12000, 16000, 22050, 24000, 32000, 44100, 48000)


class AudioFormat(enum.Enum):
    WAV = ".wav"
    MP3 = ".mp3"


@dataclass(frozen=True)
class DeviceTarget:
    """Play on the default output device."""


@dataclass(frozen=True)
class FileTarget:
    """Save to *path* in *format*."""

    path: Path
    format: AudioFormat


OutputTarget = Union[DeviceTarget, FileTarget]


def resolve_target(output_path: str | os.PathLike | None) -> OutputTarget:
    """Build the output target for *output_path*.

    An empty path means the default audio device. Otherwise the extension
    picks the container, case-insensitively.

    Raises:
        OutputError: If the extension is neither ``.wav`` nor ``.mp3``.
    """
    if not output_path:
        return DeviceTarget()
    path = Path(output_path)
    suffix = path.suffix.lower()
    for fmt in AudioFormat:
        if suffix == fmt.value:
            return FileTarget(path=path, format=fmt)
    raise OutputError(
        f'Invalid output file format "{path.suffix}". Either .WAV or .MP3 allowed!'
    )


def dispatch(buffer: PcmBuffer, target: OutputTarget) -> None:
    """Deliver *buffer* to *target*, blocking until done."""
    if isinstance(target, DeviceTarget):
        play(buffer)
    elif isinstance(target, FileTarget) and target.format is AudioFormat.WAV:
        write_wav(buffer, target.path)
    elif isinstance(target, FileTarget) and target.format is AudioFormat.MP3:
        write_mp3(buffer, target.path)
    else:
        raise OutputError(f"Unsupported output target: {target!r}")


def dispatch_to_path(buffer: PcmBuffer, output_path: str | os.PathLike | None) -> None:
    dispatch(buffer, resolve_target(output_path))


# ---------------------------------------------------------------------------
# Device playback
# ---------------------------------------------------------------------------


def play(buffer: PcmBuffer) -> None:
    """Play *buffer* on the default output device (blocks until finished)."""
    try:
        import sounddevice as sd  # needs the PortAudio shared library
    except OSError as exc:
        raise AudioIOError(f"Audio playback unavailable: {exc}") from exc

    try:
        device_rate = int(sd.query_devices(kind="output")["default_samplerate"])
        if device_rate != buffer.sample_rate:
            # some host APIs reject rates the hardware does not run at
            logger.debug("Resampling %d Hz to %d Hz for playback", buffer.sample_rate, device_rate)
            buffer = buffer.convert(device_rate, buffer.bits_per_sample, buffer.channels)
        logger.info("Playing %.2fs of audio", buffer.duration)
        sd.play(buffer.as_array(), samplerate=buffer.sample_rate, blocking=True)
    except sd.PortAudioError as exc:
        raise AudioIOError(f"Audio playback failed: {exc}") from exc


# ---------------------------------------------------------------------------
# File output
# ---------------------------------------------------------------------------


def _commit(path: Path, write: Callable[[Path], None]) -> None:
    """Write through a sibling temp file and move it into place.

    Nothing is left at *path* (or beside it) when *write* fails.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise AudioIOError(f"Cannot write {path}: {exc}") from exc

    tmp = path.with_name(f".{path.name}.part")
    try:
        write(tmp)
        os.replace(tmp, path)
    except OSError as exc:
        raise AudioIOError(f"Cannot write {path}: {exc}") from exc
    finally:
        tmp.unlink(missing_ok=True)


def write_wav(buffer: PcmBuffer, path: Path) -> None:
    """Save *buffer* as a RIFF/WAVE PCM file."""
    _commit(Path(path), buffer.write_wav)
    logger.info("Saved WAV to %s", path)


def _nearest_mp3_rate(sample_rate: int) -> int:
    return min(MP3_SAMPLE_RATES, key=lambda rate: abs(rate - sample_rate))


def _encode_mp3(buffer: PcmBuffer, path: Path) -> None:
    ffmpeg = shutil.which(FFMPEG)
    if ffmpeg is None:
        raise AudioIOError(f"MP3 encoder not found: '{FFMPEG}' is not on PATH")

    cmd = [
        ffmpeg, "-hide_banner", "-loglevel", "error", "-y",
        "-f", "wav", "-i", "pipe:0",
        "-codec:a", "libmp3lame", "-q:a", str(MP3_VBR_QUALITY),
    ]
    out_rate = _nearest_mp3_rate(buffer.sample_rate)
    if out_rate != buffer.sample_rate:
        logger.debug("Resampling %d Hz to %d Hz for MP3", buffer.sample_rate, out_rate)
        cmd += ["-ar", str(out_rate)]
    cmd += ["-f", "mp3", str(path)]

    try:
        subprocess.run(cmd, input=buffer.to_wav_bytes(), capture_output=True, check=True)
    except subprocess.CalledProcessError as exc:
        detail = exc.stderr.decode(errors="replace").strip() if exc.stderr else ""
        raise AudioIOError(
            f"MP3 encoding failed (exit {exc.returncode}): {detail}"
        ) from exc


def write_mp3(buffer: PcmBuffer, path: Path) -> None:
    """Encode *buffer* to a VBR MP3 file through ffmpeg/LAME."""
    _commit(Path(path), lambda tmp: _encode_mp3(buffer, tmp))
    logger.info("Saved MP3 to %s", path)
