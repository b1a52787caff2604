"""Conftest.py for pytest configuration."""

import os
import sys

# Add the project root to sys.path so that the brainwave package is discoverable.
project_root = os.path.abspath(os.path.dirname(__file__))
if project_root not in sys.path:
    sys.path.insert(0, project_root)


# Add command line options
def pytest_addoption(parser):
    """Add custom command line options to pytest."""
    parser.addoption(
        "--run-audio-device",
        action="store_true",
        default=False,
        help="Run tests that open a real audio output device",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "audio_device: mark test as needing a real audio output device"
    )


def pytest_collection_modifyitems(config, items):
    """Skip audio device tests unless --run-audio-device is given."""
    import pytest  # pylint: disable=import-outside-toplevel

    if config.getoption("--run-audio-device"):
        return
    skip_device = pytest.mark.skip(reason="needs --run-audio-device to run")
    for item in items:
        if "audio_device" in item.keywords:
            item.add_marker(skip_device)
