"""Session controller: owns the live oscillator pair of a binaural session."""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from brainwave.audio_graph import (
    RUNNING,
    AudioContext,
    AudioNode,
    Channel,
    Oscillator,
    Panner,
)
from brainwave.constants import (
    LEFT_PAN,
    RIGHT_PAN,
    TEST_TONE_DURATION,
    TEST_TONE_FREQUENCY,
    TEST_TONE_TYPE,
    TEST_TONE_VOLUME_DB,
)
from brainwave.data_types import SessionParameters
from brainwave.exceptions import (
    AudioError,
    ContextUnavailableError,
    NodeAllocationError,
    StartFailedError,
)

logger = logging.getLogger(__name__)

# A route is the panner feeding the channel strip of one ear
Route = Tuple[Panner, Channel]


@dataclass
class PlaybackSession:
    """The audio nodes of one playing session."""

    left_oscillator: Oscillator
    right_oscillator: Oscillator
    left_route: Route
    right_route: Route

    @property
    def left_frequency(self) -> float:
        return self.left_oscillator.frequency.value

    @property
    def right_frequency(self) -> float:
        return self.right_oscillator.frequency.value

    def nodes(self) -> List[AudioNode]:
        """All owned nodes, sources first."""
        return [
            self.left_oscillator,
            self.right_oscillator,
            *self.left_route,
            *self.right_route,
        ]


class SessionController:
    """Starts, updates and stops the stereo oscillator pair.

    Args:
        context: The audio context the session plays through.
        test_tone: Play a short diagnostic tone on every start.
    """

    def __init__(self, context: AudioContext, test_tone: bool = False):
        self.context = context
        self.test_tone = test_tone
        self.active_session: Optional[PlaybackSession] = None
        self._playing = False
        self._test_oscillator: Optional[Oscillator] = None

    @property
    def playing(self) -> bool:
        return self._playing

    async def start(self, params: SessionParameters) -> None:
        """Builds the oscillator pair for ``params`` and starts it.

        Does nothing if a session is already playing.

        Raises:
            StartFailedError: If the audio context cannot be resumed or the
                nodes cannot be allocated or started. Nothing is left allocated and
                ``playing`` stays false.
        """
        if self._playing:
            logger.warning("Start requested while already playing; ignoring.")
            return

        params = params.clamped()
        session = None
        try:
            await self._ensure_running()
            session = self._allocate(params)
            logger.debug(
                "Starting oscillators: Left=%.1fHz, Right=%.1fHz",
                params.left_frequency,
                params.right_frequency,
            )
            session.left_oscillator.start()
            session.right_oscillator.start()
        except Exception as e:
            if session is not None:
                _discard(session)
            logger.error("Audio playback error: %s", e)
            raise StartFailedError(e) from e

        self.active_session = session
        self._playing = True

        if self.test_tone:
            self._play_test_tone()

        logger.info("Playback started: %s", params)

    async def _ensure_running(self) -> None:
        if self.context.state == RUNNING:
            return
        try:
            await self.context.resume()
        except ContextUnavailableError:
            raise
        except Exception as e:
            raise ContextUnavailableError(
                f"Could not resume audio context: {e}"
            ) from e
        logger.info("Audio context started.")

    def _allocate(self, params: SessionParameters) -> PlaybackSession:
        """Creates the two routed oscillators, releasing them on failure."""
        created: List[AudioNode] = []

        def track(node):
            created.append(node)
            return node

        try:
            left_route = self._allocate_route(LEFT_PAN, params.volume_db, track)
            right_route = self._allocate_route(RIGHT_PAN, params.volume_db, track)
            # Oscillators stay at unity gain; the channels carry the volume
            left_oscillator = track(
                Oscillator(
                    self.context, frequency=params.left_frequency, type="sine"
                )
            )
            left_oscillator.connect(left_route[0])
            right_oscillator = track(
                Oscillator(
                    self.context, frequency=params.right_frequency, type="sine"
                )
            )
            right_oscillator.connect(right_route[0])
        except NodeAllocationError:
            _release(created)
            raise
        except Exception as e:
            _release(created)
            raise NodeAllocationError(f"Could not allocate audio nodes: {e}") from e

        return PlaybackSession(
            left_oscillator=left_oscillator,
            right_oscillator=right_oscillator,
            left_route=left_route,
            right_route=right_route,
        )

    def _allocate_route(self, pan: float, volume_db: float, track) -> Route:
        channel = track(Channel(self.context, volume_db=volume_db))
        channel.to_destination()
        panner = track(Panner(self.context, pan=pan))
        panner.connect(channel)
        return panner, channel

    def _play_test_tone(self) -> None:
        self._release_test_tone()
        tone = None
        try:
            tone = Oscillator(
                self.context,
                frequency=TEST_TONE_FREQUENCY,
                type=TEST_TONE_TYPE,
                volume=TEST_TONE_VOLUME_DB,
            )
            tone.to_destination()
            tone.start()
            tone.stop(self.context.current_time + TEST_TONE_DURATION)
        except AudioError as e:
            logger.warning("Could not play test tone: %s", e)
            if tone is not None:
                _release([tone])
            return
        self._test_oscillator = tone
        logger.debug("Test tone playing for %.1fs", TEST_TONE_DURATION)

    def _release_test_tone(self) -> None:
        if self._test_oscillator is not None:
            _release([self._test_oscillator])
            self._test_oscillator = None

    def apply_parameters(self, params: SessionParameters) -> None:
        """Pushes ``params`` into the live oscillators and channels.

        No-op when nothing is playing. Node identity is preserved.
        """
        session = self.active_session
        if not self._playing or session is None:
            return
        params = params.clamped()
        with self.context.lock:
            session.left_oscillator.frequency.value = params.left_frequency
            session.right_oscillator.frequency.value = params.right_frequency
            session.left_route[1].volume.value = params.volume_db
            session.right_route[1].volume.value = params.volume_db
        tone = self._test_oscillator
        if tone is not None and tone.state == "stopped":
            self._release_test_tone()
        logger.debug(
            "Updated oscillators: Left=%.1fHz, Right=%.1fHz, Volume=%.1fdB",
            params.left_frequency,
            params.right_frequency,
            params.volume_db,
        )

    def stop(self) -> None:
        """Stops the oscillators and releases every owned node.

        Safe to call at any time, any number of times.
        """
        session, self.active_session = self.active_session, None
        self._playing = False
        self._release_test_tone()
        if session is None:
            return
        _discard(session)
        logger.info("Oscillators stopped and disposed.")

    def teardown(self) -> None:
        """Releases everything the controller owns, playing or not."""
        self.stop()

    def __enter__(self) -> "SessionController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()


def _release(nodes: List[AudioNode]) -> None:
    """Disposes each node, logging and skipping any that fail."""
    for node in nodes:
        try:
            node.dispose()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Error disposing %s: %s", type(node).__name__, e)


def _discard(session: PlaybackSession) -> None:
    """Silences both oscillators, then releases every node of ``session``."""
    for oscillator in (session.left_oscillator, session.right_oscillator):
        try:
            oscillator.stop()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("Error stopping oscillator: %s", e)
    _release(session.nodes())
