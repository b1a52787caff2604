"""
A small live synthesis graph: oscillators routed through panners and
channels into a stereo output stream played with sounddevice.

Nodes are pulled block by block from the destination inside the stream
callback. All graph mutation and rendering happens under the context lock.
"""

import asyncio
import logging
import math
import threading
from typing import Callable, List, Optional

import numpy as np

from brainwave.constants import (
    DEFAULT_BLOCK_SIZE,
    DEFAULT_SAMPLE_RATE,
    WAVEFORM_TYPES,
)
from brainwave.exceptions import (
    ContextUnavailableError,
    NodeAllocationError,
    NodeDisposedError,
)
from brainwave.tone_generator import db_to_gain, equal_power_pan, generate_tone_block

logger = logging.getLogger(__name__)

SUSPENDED = "suspended"
RUNNING = "running"
CLOSED = "closed"


def _output_stream(**kwargs):
    """Opens a sounddevice output stream.

    sounddevice loads PortAudio when imported, so the import waits until a
    stream is actually needed and a missing library surfaces as a failed
    resume.
    """
    import sounddevice as sd  # pylint: disable=import-outside-toplevel

    return sd.OutputStream(**kwargs)


class Param:
    """A mutable node parameter, optionally clamped to a range."""

    def __init__(
        self,
        value: float,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
    ):
        self.min_value = min_value
        self.max_value = max_value
        self._value = self._clamp(value)

    def _clamp(self, value: float) -> float:
        value = float(value)
        if self.min_value is not None:
            value = max(value, self.min_value)
        if self.max_value is not None:
            value = min(value, self.max_value)
        return value

    @property
    def value(self) -> float:
        return self._value

    @value.setter
    def value(self, value: float) -> None:
        self._value = self._clamp(value)

    def __repr__(self) -> str:
        return f"Param({self._value})"


class AudioContext:
    """Owns the output stream and the clock of a synthesis graph.

    The context starts suspended. ``resume()`` opens the output stream,
    after which the stream callback renders the graph continuously.

    Args:
        sample_rate: Output sample rate in Hz.
        block_size: Frames rendered per stream callback.
        stream_factory: Callable with the ``sounddevice.OutputStream``
            signature. Defaults to ``sounddevice.OutputStream``.
    """

    def __init__(
        self,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        block_size: int = DEFAULT_BLOCK_SIZE,
        stream_factory: Optional[Callable[..., object]] = None,
    ):
        self.sample_rate = int(sample_rate)
        self.block_size = int(block_size)
        self._stream_factory = stream_factory or _output_stream
        self._stream = None
        self._state = SUSPENDED
        self._frames_rendered = 0
        self.lock = threading.RLock()
        self.destination = Destination(self)

    @property
    def state(self) -> str:
        """One of 'suspended', 'running' or 'closed'."""
        return self._state

    @property
    def current_time(self) -> float:
        """Seconds of audio rendered so far."""
        return self._frames_rendered / self.sample_rate

    async def resume(self) -> None:
        """Opens and starts the output stream if it is not running yet.

        Raises:
            ContextUnavailableError: If the context is closed or the output
                stream cannot be opened or started.
        """
        if self._state == RUNNING:
            return
        if self._state == CLOSED:
            raise ContextUnavailableError("Audio context has been closed.")
        try:
            await asyncio.to_thread(self._open_stream)
        except Exception as e:
            raise ContextUnavailableError(
                f"Could not start audio output stream: {e}"
            ) from e
        logger.debug(
            "Audio context running at %d Hz, block size %d",
            self.sample_rate,
            self.block_size,
        )

    def _open_stream(self) -> None:
        stream = self._stream_factory(
            samplerate=self.sample_rate,
            blocksize=self.block_size,
            channels=2,
            dtype="float32",
            callback=self._callback,
        )
        try:
            stream.start()
        except Exception:
            stream.close()
            raise
        self._stream = stream
        self._state = RUNNING

    def _callback(self, outdata, frames, time_info, status) -> None:
        if status:
            logger.warning("Audio callback status: %s", status)
        outdata[:] = self.render(frames)

    def render(self, frames: int) -> np.ndarray:
        """Renders the next ``frames`` frames of the graph.

        Returns:
            A float32 array of shape (frames, 2).
        """
        with self.lock:
            block = self.destination.pull(frames, self._frames_rendered)
            self._frames_rendered += frames
        return block.astype(np.float32)

    def close(self) -> None:
        """Stops and closes the output stream. Safe to call repeatedly."""
        if self._state == CLOSED:
            return
        stream, self._stream = self._stream, None
        self._state = CLOSED
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Error closing audio stream: %s", e)


class AudioNode:
    """Base class for graph nodes producing stereo blocks."""

    def __init__(self, context: AudioContext):
        if context.state == CLOSED:
            raise NodeAllocationError(
                f"Cannot create {type(self).__name__} on a closed audio context."
            )
        self.context = context
        self._inputs: List["AudioNode"] = []
        self._outputs: List["AudioNode"] = []
        self._disposed = False
        self._cache_start = -1
        self._cache: Optional[np.ndarray] = None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _check_alive(self) -> None:
        if self._disposed:
            raise NodeDisposedError(f"{type(self).__name__} has been disposed.")

    def connect(self, node: "AudioNode") -> "AudioNode":
        """Routes this node's output into ``node``. Returns ``node``."""
        self._check_alive()
        node._check_alive()  # pylint: disable=protected-access
        with self.context.lock:
            if node not in self._outputs:
                self._outputs.append(node)
                node._inputs.append(self)  # pylint: disable=protected-access
        return node

    def to_destination(self) -> "AudioNode":
        """Routes this node straight to the context's output."""
        self.connect(self.context.destination)
        return self

    def disconnect(self) -> None:
        """Removes all outgoing connections."""
        with self.context.lock:
            for node in self._outputs:
                if self in node._inputs:  # pylint: disable=protected-access
                    node._inputs.remove(self)  # pylint: disable=protected-access
            self._outputs.clear()

    def dispose(self) -> None:
        """Disconnects the node from the graph and releases it."""
        if self._disposed:
            return
        with self.context.lock:
            self.disconnect()
            for node in list(self._inputs):
                node.disconnect()
            self._inputs.clear()
            self._cache = None
            self._disposed = True

    def pull(self, frames: int, block_start: int) -> np.ndarray:
        """Returns this node's output for the block starting at ``block_start``.

        A node is rendered once per block even when pulled by several
        outputs.
        """
        if self._cache is None or self._cache_start != block_start:
            self._cache = self.process(frames, block_start)
            self._cache_start = block_start
        return self._cache

    def _mix_inputs(self, frames: int, block_start: int) -> np.ndarray:
        mixed = np.zeros((frames, 2))
        for node in self._inputs:
            mixed += node.pull(frames, block_start)
        return mixed

    def process(self, frames: int, block_start: int) -> np.ndarray:
        return self._mix_inputs(frames, block_start)


class Destination(AudioNode):
    """The output sink of a context. Clips the mix to [-1, 1]."""

    def process(self, frames: int, block_start: int) -> np.ndarray:
        return np.clip(self._mix_inputs(frames, block_start), -1.0, 1.0)

    def dispose(self) -> None:
        # The destination lives as long as its context
        return


class Oscillator(AudioNode):
    """A periodic tone source.

    The output is mono, duplicated to both channels, at ``volume`` dB.
    """

    def __init__(
        self,
        context: AudioContext,
        frequency: float = 440.0,
        type: str = "sine",  # pylint: disable=redefined-builtin
        volume: float = 0.0,
    ):
        if type not in WAVEFORM_TYPES:
            raise NodeAllocationError(
                f"Unsupported oscillator type '{type}'. "
                f"Supported: {', '.join(WAVEFORM_TYPES)}"
            )
        if frequency < 0 or not math.isfinite(frequency):
            raise NodeAllocationError(f"Invalid oscillator frequency {frequency}Hz.")
        super().__init__(context)
        self.type = type
        self.frequency = Param(frequency, min_value=0.0)
        self.volume = Param(volume)
        self._phase = 0.0
        self._start_time: Optional[float] = None
        self._stop_time: Optional[float] = None

    @property
    def state(self) -> str:
        """'started' while sounding at the current time, else 'stopped'."""
        now = self.context.current_time
        if self._disposed or self._start_time is None or now < self._start_time:
            return "stopped"
        if self._stop_time is not None and now >= self._stop_time:
            return "stopped"
        return "started"

    def start(self, when: Optional[float] = None) -> "Oscillator":
        """Starts the tone at ``when`` (context seconds), default now.

        The tone runs until ``stop`` is called.
        """
        self._check_alive()
        with self.context.lock:
            self._start_time = self.context.current_time if when is None else when
            self._stop_time = None
        return self

    def stop(self, when: Optional[float] = None) -> "Oscillator":
        """Stops the tone at ``when`` (context seconds), default now."""
        self._check_alive()
        with self.context.lock:
            self._stop_time = self.context.current_time if when is None else when
        return self

    def process(self, frames: int, block_start: int) -> np.ndarray:
        rate = self.context.sample_rate
        # Not started yet, or stopped for good before this block
        if self._start_time is None or (
            self._stop_time is not None and block_start / rate >= self._stop_time
        ):
            return np.zeros((frames, 2))
        times = (block_start + np.arange(frames)) / rate
        active = times >= self._start_time
        if self._stop_time is not None:
            active &= times < self._stop_time
        samples, self._phase = generate_tone_block(
            rate, self.frequency.value, self._phase, active, self.type
        )
        samples *= db_to_gain(self.volume.value)
        return np.column_stack((samples, samples))


class Panner(AudioNode):
    """Equal-power stereo panner. ``pan`` runs from -1 (left) to 1 (right)."""

    def __init__(self, context: AudioContext, pan: float = 0.0):
        super().__init__(context)
        self.pan = Param(pan, min_value=-1.0, max_value=1.0)

    def process(self, frames: int, block_start: int) -> np.ndarray:
        mono = self._mix_inputs(frames, block_start).mean(axis=1)
        left_gain, right_gain = equal_power_pan(self.pan.value)
        return np.column_stack((mono * left_gain, mono * right_gain))


class Channel(AudioNode):
    """A channel strip applying volume (dB) and mute to its inputs."""

    def __init__(
        self, context: AudioContext, volume_db: float = 0.0, mute: bool = False
    ):
        super().__init__(context)
        self.volume = Param(volume_db)
        self.mute = mute

    def process(self, frames: int, block_start: int) -> np.ndarray:
        mixed = self._mix_inputs(frames, block_start)
        if self.mute:
            return np.zeros_like(mixed)
        return mixed * db_to_gain(self.volume.value)
