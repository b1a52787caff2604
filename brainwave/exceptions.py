"""Exceptions raised by the brainwave package."""


class BrainwaveError(Exception):
    """Base class for all brainwave errors."""


class ConfigurationError(BrainwaveError):
    """Invalid configuration values or structure."""


class ConfigFileNotFoundError(ConfigurationError):
    """The configuration file does not exist."""


class YAMLParsingError(ConfigurationError):
    """The configuration file is not valid YAML."""


class AudioError(BrainwaveError):
    """Base class for audio backend errors."""


class ContextUnavailableError(AudioError):
    """The audio output context could not be resumed."""


class NodeAllocationError(AudioError):
    """An audio node could not be constructed or routed."""


class NodeDisposedError(AudioError):
    """An operation was attempted on a disposed audio node."""


class StartFailedError(AudioError):
    """Starting a playback session failed.

    The underlying error is available as ``cause`` (and as ``__cause__``
    when raised with ``raise ... from``).
    """

    def __init__(self, cause: Exception):
        super().__init__(f"Failed to start playback: {cause}")
        self.cause = cause
