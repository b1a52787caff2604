"""Test doubles and signal helpers shared by the test modules."""

import numpy as np

SAMPLE_RATE = 8000


class FakeOutputStream:
    """Stands in for sounddevice.OutputStream without touching audio hardware."""

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True


class BrokenOutputStream(FakeOutputStream):
    """An output stream whose device refuses to start."""

    def start(self):
        raise RuntimeError("Error opening OutputStream: Device unavailable")


def dominant_frequency(signal: np.ndarray, sample_rate: int = SAMPLE_RATE) -> float:
    """Frequency of the strongest FFT bin of ``signal``."""
    spectrum = np.abs(np.fft.rfft(signal))
    freqs = np.fft.rfftfreq(len(signal), 1.0 / sample_rate)
    return float(freqs[np.argmax(spectrum)])
