"""Holds the current session parameters and forwards changes to playback."""

import logging
from dataclasses import replace
from typing import Callable, List, Optional, Union

from brainwave.bands import BrainwaveBand, band_midpoint, clamp_beat, parse_band
from brainwave.constants import (
    MAX_CARRIER_FREQUENCY,
    MAX_VOLUME_DB,
    MIN_CARRIER_FREQUENCY,
    MIN_VOLUME_DB,
)
from brainwave.data_types import SessionParameters
from brainwave.session import SessionController

logger = logging.getLogger(__name__)

Listener = Callable[[SessionParameters], None]


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(float(value), low), high)


class ParameterStore:
    """Current session configuration plus the derived playing flag.

    Every accepted change is pushed to the controller with
    ``apply_parameters`` (which does nothing while stopped) and then to
    subscribers. Out-of-range numbers are clamped, never rejected.
    """

    def __init__(
        self,
        controller: Optional[SessionController] = None,
        parameters: Optional[SessionParameters] = None,
    ):
        self.controller = controller
        self._params = (parameters or SessionParameters()).clamped()
        self._listeners: List[Listener] = []

    @property
    def playing(self) -> bool:
        return self.controller is not None and self.controller.playing

    def get_parameters(self) -> SessionParameters:
        return self._params

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registers a change listener. Returns a function that removes it.

        Calling the returned function more than once is harmless.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _update(self, **changes) -> SessionParameters:
        self._params = replace(self._params, **changes)
        if self.controller is not None:
            self.controller.apply_parameters(self._params)
        for listener in list(self._listeners):
            listener(self._params)
        return self._params

    def _carrier_locked(self) -> bool:
        if self.playing:
            logger.debug("Carrier frequency is locked while playing.")
            return True
        return False

    def set_carrier(self, hz: float) -> bool:
        """Sets a custom carrier frequency.

        Only honoured while the custom carrier is enabled and nothing is
        playing. Returns whether the change was applied.
        """
        if not self._params.custom_carrier_enabled:
            logger.debug("Custom carrier is disabled; ignoring %.1fHz.", hz)
            return False
        if self._carrier_locked():
            return False
        carrier = _clamp(hz, MIN_CARRIER_FREQUENCY, MAX_CARRIER_FREQUENCY)
        self._update(carrier_hz=carrier)
        return True

    def select_carrier_preset(self, hz: float) -> bool:
        """Switches to a preset carrier and turns the custom carrier off."""
        if self._carrier_locked():
            return False
        carrier = _clamp(hz, MIN_CARRIER_FREQUENCY, MAX_CARRIER_FREQUENCY)
        self._update(carrier_hz=carrier, custom_carrier_enabled=False)
        return True

    def enable_custom_carrier(self) -> bool:
        """Allows ``set_carrier`` to change the carrier frequency."""
        if self._carrier_locked():
            return False
        self._update(custom_carrier_enabled=True)
        return True

    def set_beat(self, hz: float) -> SessionParameters:
        """Sets the beat frequency, clamped into the active band."""
        return self._update(beat_hz=clamp_beat(self._params.active_band, hz))

    def set_volume(self, db: float) -> SessionParameters:
        """Sets the channel volume in dB, clamped to the slider range."""
        return self._update(volume_db=_clamp(db, MIN_VOLUME_DB, MAX_VOLUME_DB))

    def select_band(self, band: Union[str, BrainwaveBand]) -> SessionParameters:
        """Switches band and resets the beat to the band's midpoint.

        Raises:
            ConfigurationError: If ``band`` names no known band.
        """
        band = parse_band(band)
        logger.debug("Selected %s band", band.label)
        return self._update(active_band=band, beat_hz=band_midpoint(band))
