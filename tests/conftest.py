"""Shared fixtures: audio contexts that render offline."""

import pytest

from brainwave.audio_graph import AudioContext
from brainwave.session import SessionController
from helpers import SAMPLE_RATE, BrokenOutputStream, FakeOutputStream


@pytest.fixture
def context():
    """A suspended audio context backed by a fake output stream."""
    ctx = AudioContext(
        sample_rate=SAMPLE_RATE, block_size=512, stream_factory=FakeOutputStream
    )
    yield ctx
    ctx.close()


@pytest.fixture
def broken_context():
    """An audio context whose output stream cannot be started."""
    ctx = AudioContext(
        sample_rate=SAMPLE_RATE, block_size=512, stream_factory=BrokenOutputStream
    )
    yield ctx
    ctx.close()


@pytest.fixture
def controller(context):
    ctl = SessionController(context)
    yield ctl
    ctl.teardown()
