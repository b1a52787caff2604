"""Utility functions for loading and validating YAML configuration files."""

import logging
from dataclasses import replace
from typing import Any, Optional

import yaml

from brainwave.bands import band_midpoint, parse_band
from brainwave.data_types import AudioSettings, SessionConfig, SessionParameters
from brainwave.exceptions import (
    BrainwaveError,
    ConfigFileNotFoundError,
    ConfigurationError,
    YAMLParsingError,
)

logger = logging.getLogger(__name__)

KNOWN_KEYS = {
    "carrier_frequency",
    "beat_frequency",
    "volume",
    "band",
    "custom_carrier",
    "sample_rate",
    "block_size",
    "test_tone",
}


def _number(config: dict, key: str, default: float) -> float:
    value = config.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}.")
    return float(value)


def _integer(config: dict, key: str, default: int) -> int:
    value = config.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"'{key}' must be an integer, got {value!r}.")
    return value


def _flag(config: dict, key: str, default: bool) -> bool:
    value = config.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be true or false, got {value!r}.")
    return value


def parse_session_config(
    config: dict[str, Any], source: Optional[str] = None
) -> SessionConfig:
    """Builds a SessionConfig from a configuration dictionary.

    A missing beat frequency defaults to the band's midpoint.

    Raises:
        ConfigurationError: If any value has the wrong type or range.
    """
    if not isinstance(config, dict):
        raise ConfigurationError("YAML configuration root must be a dictionary.")

    unknown = sorted(set(config) - KNOWN_KEYS)
    if unknown:
        logger.warning("Ignoring unknown configuration keys: %s", unknown)

    defaults = SessionParameters()
    band = parse_band(config.get("band", defaults.active_band))

    try:
        parameters = SessionParameters(
            carrier_hz=_number(config, "carrier_frequency", defaults.carrier_hz),
            beat_hz=_number(config, "beat_frequency", band_midpoint(band)),
            volume_db=_number(config, "volume", defaults.volume_db),
            active_band=band,
            custom_carrier_enabled=_flag(
                config, "custom_carrier", defaults.custom_carrier_enabled
            ),
        )
        audio = AudioSettings(
            sample_rate=_integer(config, "sample_rate", AudioSettings.sample_rate),
            block_size=_integer(config, "block_size", AudioSettings.block_size),
            test_tone=_flag(config, "test_tone", AudioSettings.test_tone),
        )
    except ValueError as e:
        # Range errors from the dataclass validation
        raise ConfigurationError(f"Invalid configuration value: {e}") from e

    clamped = parameters.clamped()
    if clamped.beat_hz != parameters.beat_hz:
        logger.info(
            "Beat frequency %.2fHz is outside the %s band; using %.2fHz.",
            parameters.beat_hz,
            band.label,
            clamped.beat_hz,
        )
    return SessionConfig(parameters=clamped, audio=audio, source=source)


def load_yaml_config(path: str) -> SessionConfig:
    """Loads and validates a YAML session configuration.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The validated SessionConfig.

    Raises:
        ConfigFileNotFoundError: If the file is not found.
        YAMLParsingError: If YAML parsing fails.
        ConfigurationError: If configuration is invalid.
    """
    try:
        # Attempt to open and read the YAML file
        with open(path, "r", encoding="utf-8") as file:
            config = yaml.safe_load(file)

        # An empty file means all defaults
        if config is None:
            config = {}

        session_config = parse_session_config(config, source=path)
        logger.debug("YAML configuration loaded and validated from %s", path)
        logger.debug("Session parameters: %s", session_config.parameters)
        return session_config

    except FileNotFoundError as e:
        raise ConfigFileNotFoundError(f"Config file '{path}' not found.") from e
    except yaml.YAMLError as e:
        raise YAMLParsingError(f"Error parsing YAML file '{path}': {e}") from e
    except ConfigurationError:  # Re-raise config errors
        raise
    except Exception as e:
        raise BrainwaveError(
            f"An unexpected error occurred loading config '{path}': {e}"
        ) from e


def apply_overrides(config: SessionConfig, **overrides: Any) -> SessionConfig:
    """Returns a copy of ``config`` with command-line style overrides applied.

    Recognised keys: band, carrier, beat, volume, test_tone. ``None`` values
    are ignored. Choosing a band without a beat resets the beat to the
    band's midpoint. Giving a carrier enables the custom carrier.
    """
    params = config.parameters
    audio = config.audio
    band = overrides.get("band")
    if band is not None:
        band = parse_band(band)
        params = replace(params, active_band=band, beat_hz=band_midpoint(band))
    try:
        if overrides.get("carrier") is not None:
            params = replace(
                params,
                carrier_hz=float(overrides["carrier"]),
                custom_carrier_enabled=True,
            )
        if overrides.get("beat") is not None:
            params = replace(params, beat_hz=float(overrides["beat"]))
        if overrides.get("volume") is not None:
            params = replace(params, volume_db=float(overrides["volume"]))
    except ValueError as e:
        raise ConfigurationError(f"Invalid session parameter: {e}") from e
    if overrides.get("test_tone"):
        audio = replace(audio, test_tone=True)
    return SessionConfig(parameters=params.clamped(), audio=audio, source=config.source)
