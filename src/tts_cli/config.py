"""Render configuration values handed to the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from tts_cli.errors import ConfigError

LOUDNESS_MIN, LOUDNESS_MAX = 0, 100
RATE_MIN, RATE_MAX = -10, 10

DEFAULT_LOUDNESS = 80
DEFAULT_RATE = 0

# Output format pinned on the engine. 16025 Hz is kept as shipped.
DEFAULT_SAMPLE_RATE = 16025
DEFAULT_BITS_PER_SAMPLE = 16
DEFAULT_CHANNELS = 1


def clamp(value: int, lower: int, upper: int) -> int:
    """Limit *value* to the closed range [lower, upper]."""
    return min(max(value, lower), upper)


@dataclass(frozen=True)
class RenderConfig:
    """Voice, loudness, rate and output settings for one render call.

    ``loudness`` and ``rate`` are clamped on construction, so an instance
    never carries an out-of-range value.
    """

    voice_name: str | None = None
    loudness: int = DEFAULT_LOUDNESS     # 0 (muted) – 100 (loud)
    rate: int = DEFAULT_RATE             # -10 (slow) – 10 (fast)
    date_time_format: str = ""           # strftime pattern, "" = locale default
    output_path: str | None = None       # None/"" = default audio device
    sample_rate: int = DEFAULT_SAMPLE_RATE
    bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE
    channels: int = DEFAULT_CHANNELS

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "loudness", clamp(int(self.loudness), LOUDNESS_MIN, LOUDNESS_MAX)
        )
        object.__setattr__(self, "rate", clamp(int(self.rate), RATE_MIN, RATE_MAX))

    @property
    def plays_on_device(self) -> bool:
        return not self.output_path


@dataclass(frozen=True)
class RenderRequest:
    """A non-empty text plus the configuration used to render it."""

    text: str
    config: RenderConfig = field(default_factory=RenderConfig)

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ConfigError(
                "Text is missing! Please specify the text you want to convert to speech."
            )
