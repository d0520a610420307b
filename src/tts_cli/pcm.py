"""In-memory PCM audio and its WAV framing."""

from __future__ import annotations

import io
import wave
from dataclasses import dataclass
from pathlib import Path

import numpy as np

SUPPORTED_BITS = (8, 16, 24, 32)
SUPPORTED_CHANNELS = (1, 2)


@dataclass(frozen=True)
class PcmBuffer:
    """Raw interleaved little-endian PCM plus the format that produced it."""

    data: bytes
    sample_rate: int
    bits_per_sample: int
    channels: int

    def __post_init__(self) -> None:
        if self.bits_per_sample not in SUPPORTED_BITS:
            raise ValueError(f"Unsupported bit depth: {self.bits_per_sample}")
        if self.channels < 1:
            raise ValueError(f"Invalid channel count: {self.channels}")
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")
        if len(self.data) % self.frame_size:
            raise ValueError(
                f"PCM data length {len(self.data)} is not a multiple of "
                f"the frame size {self.frame_size}"
            )

    @property
    def sample_width(self) -> int:
        """Bytes per sample of one channel."""
        return self.bits_per_sample // 8

    @property
    def frame_size(self) -> int:
        return self.sample_width * self.channels

    @property
    def frame_count(self) -> int:
        return len(self.data) // self.frame_size

    @property
    def duration(self) -> float:
        """Length of the audio in seconds."""
        return self.frame_count / self.sample_rate

    @property
    def format(self) -> tuple[int, int, int]:
        return self.sample_rate, self.bits_per_sample, self.channels

    # ------------------------------------------------------------------
    # WAV container
    # ------------------------------------------------------------------

    @classmethod
    def from_wav(cls, source: str | Path | io.BufferedIOBase) -> PcmBuffer:
        """Read a RIFF/WAVE PCM file (path or binary file object)."""
        if isinstance(source, Path):
            source = str(source)
        with wave.open(source, "rb") as wf:
            return cls(
                data=wf.readframes(wf.getnframes()),
                sample_rate=wf.getframerate(),
                bits_per_sample=wf.getsampwidth() * 8,
                channels=wf.getnchannels(),
            )

    @classmethod
    def from_wav_bytes(cls, payload: bytes) -> PcmBuffer:
        return cls.from_wav(io.BytesIO(payload))

    def write_wav(self, target: str | Path | io.BufferedIOBase) -> None:
        """Write the samples unchanged as a RIFF/WAVE PCM container."""
        if isinstance(target, Path):
            target = str(target)
        with wave.open(target, "wb") as wf:
            wf.setnchannels(self.channels)
            wf.setsampwidth(self.sample_width)
            wf.setframerate(self.sample_rate)
            wf.writeframes(self.data)

    def to_wav_bytes(self) -> bytes:
        stream = io.BytesIO()
        self.write_wav(stream)
        return stream.getvalue()

    # ------------------------------------------------------------------
    # numpy views
    # ------------------------------------------------------------------

    def as_array(self) -> np.ndarray:
        """Samples as a ``(frames, channels)`` integer array.

        8-bit audio stays unsigned (``uint8``); 24-bit audio is widened to
        ``int32`` with the sample in the upper three bytes so its full-scale
        range matches 32-bit audio.
        """
        width = self.sample_width
        if width == 1:
            samples = np.frombuffer(self.data, dtype=np.uint8)
        elif width == 2:
            samples = np.frombuffer(self.data, dtype="<i2")
        elif width == 3:
            raw = np.frombuffer(self.data, dtype=np.uint8).reshape(-1, 3)
            padded = np.zeros((raw.shape[0], 4), dtype=np.uint8)
            padded[:, 1:] = raw
            samples = padded.view("<i4").reshape(-1)
        else:
            samples = np.frombuffer(self.data, dtype="<i4")
        return samples.reshape(-1, self.channels)

    def to_float(self) -> np.ndarray:
        """Samples scaled to float32 in [-1.0, 1.0), shape ``(frames, channels)``."""
        samples = self.as_array()
        if self.sample_width == 1:
            return (samples.astype(np.float32) - 128.0) / 128.0
        # 24-bit samples were widened to 32-bit full scale by as_array()
        full_scale = 32768.0 if self.sample_width == 2 else 2.0 ** 31
        return (samples.astype(np.float64) / full_scale).astype(np.float32)

    @classmethod
    def from_float(
        cls, samples: np.ndarray, sample_rate: int, bits_per_sample: int
    ) -> PcmBuffer:
        """Quantize a ``(frames, channels)`` float array in [-1.0, 1.0]."""
        if bits_per_sample not in SUPPORTED_BITS:
            raise ValueError(f"Unsupported bit depth: {bits_per_sample}")
        samples = np.asarray(samples, dtype=np.float64)
        if samples.ndim == 1:
            samples = samples.reshape(-1, 1)
        channels = samples.shape[1]
        half = 2.0 ** (bits_per_sample - 1)
        scaled = np.clip(np.round(samples * half), -half, half - 1)

        if bits_per_sample == 8:
            data = (scaled + 128).astype(np.uint8).tobytes()
        elif bits_per_sample == 16:
            data = scaled.astype("<i2").tobytes()
        elif bits_per_sample == 24:
            wide = scaled.astype("<i4").reshape(-1)
            data = wide.view(np.uint8).reshape(-1, 4)[:, :3].tobytes()
        else:
            data = scaled.astype("<i4").tobytes()
        return cls(
            data=data,
            sample_rate=sample_rate,
            bits_per_sample=bits_per_sample,
            channels=channels,
        )

    # ------------------------------------------------------------------
    # Format conversion
    # ------------------------------------------------------------------

    def convert(self, sample_rate: int, bits_per_sample: int, channels: int) -> PcmBuffer:
        """Return this audio in another (sample rate, bit depth, channels) format.

        The buffer is returned as-is when the format already matches.
        Resampling is linear interpolation; stereo is down-mixed by
        averaging and mono is up-mixed by duplication.
        """
        if (sample_rate, bits_per_sample, channels) == self.format:
            return self
        if channels not in SUPPORTED_CHANNELS:
            raise ValueError(f"Unsupported channel count: {channels}")

        samples = self.to_float()
        if self.channels != channels:
            mono = samples.mean(axis=1, keepdims=True)
            samples = np.repeat(mono, channels, axis=1)

        if sample_rate != self.sample_rate and self.frame_count:
            n_out = max(1, round(self.frame_count * sample_rate / self.sample_rate))
            src_t = np.arange(self.frame_count) / self.sample_rate
            dst_t = np.arange(n_out) / sample_rate
            samples = np.stack(
                [np.interp(dst_t, src_t, samples[:, ch]) for ch in range(channels)],
                axis=1,
            )

        return PcmBuffer.from_float(samples, sample_rate, bits_per_sample)
