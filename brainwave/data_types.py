"""Types used in the brainwave package."""

from dataclasses import dataclass, field, replace
from typing import Optional

from brainwave.bands import BrainwaveBand, clamp_beat
from brainwave.constants import (
    DEFAULT_BAND,
    DEFAULT_BEAT_FREQUENCY,
    DEFAULT_BLOCK_SIZE,
    DEFAULT_CARRIER_FREQUENCY,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_VOLUME_DB,
    MAX_CARRIER_FREQUENCY,
    MAX_VOLUME_DB,
    MIN_CARRIER_FREQUENCY,
    MIN_VOLUME_DB,
)


@dataclass(frozen=True)
class SessionParameters:
    """User-adjustable settings for a binaural session.

    ``beat_hz`` is not validated against the band here; the parameter store
    and the session controller clamp it into the band before use.
    """

    carrier_hz: float = DEFAULT_CARRIER_FREQUENCY
    beat_hz: float = DEFAULT_BEAT_FREQUENCY
    volume_db: float = DEFAULT_VOLUME_DB
    active_band: BrainwaveBand = BrainwaveBand(DEFAULT_BAND)
    custom_carrier_enabled: bool = False

    def __post_init__(self) -> None:
        """Validate the structural ranges."""
        if not isinstance(self.active_band, BrainwaveBand):
            raise ValueError(f"Invalid band '{self.active_band}'.")
        if not MIN_CARRIER_FREQUENCY <= self.carrier_hz <= MAX_CARRIER_FREQUENCY:
            raise ValueError(
                f"Carrier frequency {self.carrier_hz}Hz must be between "
                f"{MIN_CARRIER_FREQUENCY}Hz and {MAX_CARRIER_FREQUENCY}Hz."
            )
        if self.beat_hz < 0:
            raise ValueError("Beat frequency must be a non-negative number.")
        if not MIN_VOLUME_DB <= self.volume_db <= MAX_VOLUME_DB:
            raise ValueError(
                f"Volume {self.volume_db}dB must be between "
                f"{MIN_VOLUME_DB}dB and {MAX_VOLUME_DB}dB."
            )

    @property
    def left_frequency(self) -> float:
        """Tone presented to the left ear."""
        return self.carrier_hz

    @property
    def right_frequency(self) -> float:
        """Tone presented to the right ear."""
        return self.carrier_hz + self.beat_hz

    def clamped(self) -> "SessionParameters":
        """Return a copy whose beat frequency lies inside the active band."""
        beat_hz = clamp_beat(self.active_band, self.beat_hz)
        if beat_hz == self.beat_hz:
            return self
        return replace(self, beat_hz=beat_hz)

    def __str__(self) -> str:
        return (
            f"{self.active_band.label}: {self.carrier_hz}Hz carrier with "
            f"{self.beat_hz}Hz beat, {self.volume_db}dB "
            f"(left {self.left_frequency}Hz, right {self.right_frequency}Hz)"
        )


@dataclass(frozen=True)
class AudioSettings:
    """Output stream settings."""

    sample_rate: int = DEFAULT_SAMPLE_RATE
    block_size: int = DEFAULT_BLOCK_SIZE
    test_tone: bool = False

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError("Sample rate must be a positive integer.")
        if self.block_size <= 0:
            raise ValueError("Block size must be a positive integer.")


@dataclass
class SessionConfig:
    """Session defaults and audio settings loaded from YAML."""

    parameters: SessionParameters = field(default_factory=SessionParameters)
    audio: AudioSettings = field(default_factory=AudioSettings)
    source: Optional[str] = None
