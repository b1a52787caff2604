"""
Generates blocks of oscillator samples for live playback,
keeping phase continuous from one block to the next.
"""

import math
from typing import Tuple

import numpy as np

from brainwave.constants import WAVEFORM_TYPES

TWO_PI = 2 * np.pi


def db_to_gain(volume_db: float) -> float:
    """Converts a level in decibels to a linear amplitude factor.

    ``-inf`` maps to silence.
    """
    if volume_db == -math.inf:
        return 0.0
    return float(10.0 ** (volume_db / 20.0))


def generate_waveform(phase: np.ndarray, waveform: str) -> np.ndarray:
    """Generates waveform samples in [-1, 1] from phase values in radians.

    Args:
        phase: Instantaneous phase of each sample.
        waveform: One of 'sine', 'triangle', 'square' or 'sawtooth'.

    Returns:
        A numpy array with one sample per phase value.

    Raises:
        ValueError: If the waveform type is not supported.
    """
    if waveform == "sine":
        return np.sin(phase)
    # Normalised position inside the current cycle, 0 <= cycle < 1
    cycle = np.mod(phase / TWO_PI, 1.0)
    if waveform == "triangle":
        return 4.0 * np.abs(np.mod(cycle + 0.75, 1.0) - 0.5) - 1.0
    if waveform == "square":
        return np.where(cycle < 0.5, 1.0, -1.0)
    if waveform == "sawtooth":
        return 2.0 * np.mod(cycle + 0.5, 1.0) - 1.0
    raise ValueError(
        f"Unsupported waveform '{waveform}'. Supported: {', '.join(WAVEFORM_TYPES)}"
    )


def generate_tone_block(
    sample_rate: int,
    frequency: float,
    phase: float,
    active: np.ndarray,
    waveform: str = "sine",
) -> Tuple[np.ndarray, float]:
    """Generates one block of a phase-continuous tone.

    The phase only advances on samples where ``active`` is true, so a tone
    that is started part way through a block begins at phase ``phase``.

    Args:
        sample_rate: The audio sample rate in Hz.
        frequency: Tone frequency in Hz for the whole block.
        phase: Phase in radians at the first sample of the block.
        active: Boolean mask, one entry per sample, of samples to sound.
        waveform: Waveform type passed to ``generate_waveform``.

    Returns:
        A tuple of the mono samples (silent where inactive) and the phase at
        the start of the next block, wrapped to [0, 2*pi).
    """
    num_samples = len(active)
    if num_samples <= 0:
        return np.zeros(0), phase

    # Phase increment per sample, zero where the tone is not sounding
    increments = np.where(active, TWO_PI * frequency / sample_rate, 0.0)
    # Phase of each sample is the phase before it plus all earlier increments
    phases = phase + np.concatenate(([0.0], np.cumsum(increments)[:-1]))

    samples = generate_waveform(phases, waveform)
    samples = np.where(active, samples, 0.0)

    next_phase = float((phase + increments.sum()) % TWO_PI)
    return samples, next_phase


def equal_power_pan(pan: float) -> Tuple[float, float]:
    """Left and right gains for a pan position between -1 and 1.

    -1 is fully left, 0 is centre (both at -3dB), 1 is fully right.
    """
    pan = min(max(float(pan), -1.0), 1.0)
    angle = (pan + 1.0) * np.pi / 4.0
    left_gain = math.cos(angle)
    right_gain = math.sin(angle)
    # Snap the extremes so hard-panned tones are fully silent on the far side
    if pan == -1.0:
        right_gain = 0.0
    elif pan == 1.0:
        left_gain = 0.0
    return left_gain, right_gain
