"""Brainwave bands and the beat frequency ranges they cover."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Union

from brainwave.exceptions import ConfigurationError


@dataclass(frozen=True)
class BandInfo:
    """Static description of a brainwave band."""

    min_beat_hz: float
    max_beat_hz: float
    description: str
    display_color: str


class BrainwaveBand(Enum):
    """Named beat frequency ranges associated with mental states."""

    DELTA = "delta"
    THETA = "theta"
    ALPHA = "alpha"
    LOW_BETA = "lowBeta"
    MID_BETA = "midBeta"
    HIGH_BETA = "highBeta"
    GAMMA = "gamma"

    @property
    def info(self) -> BandInfo:
        """The fixed table entry for this band."""
        return BAND_TABLE[self]

    @property
    def min_beat_hz(self) -> float:
        return self.info.min_beat_hz

    @property
    def max_beat_hz(self) -> float:
        return self.info.max_beat_hz

    @property
    def description(self) -> str:
        return self.info.description

    @property
    def display_color(self) -> str:
        return self.info.display_color

    @property
    def label(self) -> str:
        """Human readable name, e.g. 'Low Beta'."""
        return self.name.replace("_", " ").title()


BAND_TABLE = {
    BrainwaveBand.DELTA: BandInfo(
        0.5, 4.0, "Deep sleep, healing, dreamless sleep", "indigo"
    ),
    BrainwaveBand.THETA: BandInfo(
        4.0, 8.0, "Deep meditation, REM sleep, creativity", "blue"
    ),
    BrainwaveBand.ALPHA: BandInfo(
        8.0, 12.0, "Relaxed alertness, calm focus, flow state", "green"
    ),
    BrainwaveBand.LOW_BETA: BandInfo(
        12.0, 15.0, "Relaxed focus, calm thinking", "yellow"
    ),
    BrainwaveBand.MID_BETA: BandInfo(
        15.0, 20.0, "Active engagement, learning", "orange"
    ),
    BrainwaveBand.HIGH_BETA: BandInfo(
        20.0, 30.0, "Alertness, problem solving", "red"
    ),
    BrainwaveBand.GAMMA: BandInfo(
        30.0, 50.0, "Higher cognitive processing, peak concentration", "purple"
    ),
}


def parse_band(name: Union[str, BrainwaveBand]) -> BrainwaveBand:
    """Resolve a band from its value ('lowBeta') or member name ('low_beta').

    Matching is case-insensitive.

    Raises:
        ConfigurationError: If the name does not match any band.
    """
    if isinstance(name, BrainwaveBand):
        return name
    key = str(name).strip().lower().replace("-", "_")
    for band in BrainwaveBand:
        if key in (band.value.lower(), band.name.lower()):
            return band
    valid = ", ".join(band.value for band in BrainwaveBand)
    raise ConfigurationError(f"Unknown brainwave band '{name}'. Valid bands: {valid}")


def round_half_up(value: float, places: int = 1) -> float:
    """Round to ``places`` decimals with halves rounded away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def band_midpoint(band: BrainwaveBand) -> float:
    """Default beat frequency for a band: its midpoint to one decimal."""
    return round_half_up((band.min_beat_hz + band.max_beat_hz) / 2, 1)


def clamp_beat(band: BrainwaveBand, beat_hz: float) -> float:
    """Clamp a beat frequency into the band's range."""
    return min(max(float(beat_hz), band.min_beat_hz), band.max_beat_hz)
