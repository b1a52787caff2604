"""Unit tests for the session controller."""

import asyncio
import logging

import numpy as np
import pytest

from brainwave import session as session_module
from brainwave.audio_graph import Oscillator
from brainwave.bands import BrainwaveBand
from brainwave.data_types import SessionParameters
from brainwave.exceptions import (
    ContextUnavailableError,
    NodeAllocationError,
    StartFailedError,
)
from brainwave.parameter_store import ParameterStore
from brainwave.session import SessionController
from helpers import SAMPLE_RATE, dominant_frequency

THETA = SessionParameters(
    carrier_hz=200.0, beat_hz=6.0, active_band=BrainwaveBand.THETA
)


def _destination_inputs(context):
    return context.destination._inputs  # pylint: disable=protected-access


def test_start_builds_binaural_pair(controller):
    "carrier 200Hz with a 6Hz theta beat plays 200Hz left and 206Hz right"
    asyncio.run(controller.start(THETA))
    assert controller.playing
    assert controller.context.state == "running"
    session = controller.active_session
    assert session.left_frequency == 200.0
    assert session.right_frequency == 206.0
    assert session.right_frequency - session.left_frequency == THETA.beat_hz

    block = controller.context.render(SAMPLE_RATE)
    assert dominant_frequency(block[:, 0]) == 200.0
    assert dominant_frequency(block[:, 1]) == 206.0


def test_routing_and_gain_staging(controller):
    "Oscillators run at unity gain, panned hard, with volume on the channels"
    params = SessionParameters(volume_db=-12.0)
    asyncio.run(controller.start(params))
    session = controller.active_session
    assert session.left_oscillator.type == "sine"
    assert session.right_oscillator.type == "sine"
    assert session.left_oscillator.volume.value == 0.0
    assert session.right_oscillator.volume.value == 0.0
    left_panner, left_channel = session.left_route
    right_panner, right_channel = session.right_route
    assert left_panner.pan.value == -1.0
    assert right_panner.pan.value == 1.0
    assert left_channel.volume.value == -12.0
    assert right_channel.volume.value == -12.0
    assert session.left_oscillator.state == "started"
    assert session.right_oscillator.state == "started"


@pytest.mark.parametrize("band", list(BrainwaveBand))
def test_beat_difference_holds_for_every_band(controller, band):
    "The right ear is always the beat frequency above the left"
    params = SessionParameters(
        carrier_hz=440.0, beat_hz=band.max_beat_hz, active_band=band
    )
    asyncio.run(controller.start(params))
    session = controller.active_session
    assert session.right_frequency - session.left_frequency == params.beat_hz


def test_start_clamps_beat_into_band(controller):
    "A beat outside the active band is silently clamped"
    params = SessionParameters(beat_hz=20.0, active_band=BrainwaveBand.ALPHA)
    asyncio.run(controller.start(params))
    assert controller.active_session.right_frequency == 212.0


def test_start_while_playing_is_ignored(controller):
    "A second start keeps the running session"
    asyncio.run(controller.start(THETA))
    first = controller.active_session
    asyncio.run(controller.start(SessionParameters(carrier_hz=1000.0)))
    assert controller.active_session is first
    assert controller.active_session.left_frequency == 200.0


def test_band_switch_updates_live_oscillators(controller):
    "Selecting alpha while playing moves the right ear to 210Hz in place"
    store = ParameterStore(controller, THETA)
    asyncio.run(controller.start(store.get_parameters()))
    session = controller.active_session
    nodes = session.nodes()

    params = store.select_band(BrainwaveBand.ALPHA)
    assert params.beat_hz == 10.0
    assert controller.active_session is session
    assert session.nodes() == nodes
    assert session.left_frequency == 200.0
    assert session.right_frequency == 210.0

    block = controller.context.render(SAMPLE_RATE)
    assert dominant_frequency(block[:, 1]) == 210.0


def test_apply_parameters_updates_volume_and_carrier(controller):
    "Live updates change frequencies and both channel volumes"
    asyncio.run(controller.start(THETA))
    controller.apply_parameters(
        SessionParameters(carrier_hz=300.0, beat_hz=7.5, volume_db=-30.0)
    )
    session = controller.active_session
    assert session.left_frequency == 300.0
    assert session.right_frequency == 307.5
    assert session.left_route[1].volume.value == -30.0
    assert session.right_route[1].volume.value == -30.0
    # Oscillator level is untouched
    assert session.left_oscillator.volume.value == 0.0


def test_apply_parameters_while_stopped_is_noop(controller):
    "Nothing happens and nothing is raised when not playing"
    controller.apply_parameters(THETA)
    assert not controller.playing
    assert controller.active_session is None
    assert _destination_inputs(controller.context) == []


def test_stop_releases_all_nodes(controller):
    "Stopping disposes every node and a new start builds fresh ones"
    asyncio.run(controller.start(THETA))
    old_nodes = controller.active_session.nodes()

    controller.stop()
    assert not controller.playing
    assert controller.active_session is None
    assert all(node.disposed for node in old_nodes)
    assert _destination_inputs(controller.context) == []
    assert np.all(controller.context.render(512) == 0.0)

    asyncio.run(controller.start(THETA))
    new_nodes = controller.active_session.nodes()
    assert controller.playing
    assert not any(new is old for new in new_nodes for old in old_nodes)
    assert not any(node.disposed for node in new_nodes)


def test_stop_is_idempotent(controller):
    "Stopping twice, or before ever starting, is harmless"
    controller.stop()
    controller.stop()
    assert not controller.playing
    asyncio.run(controller.start(THETA))
    controller.stop()
    controller.stop()
    assert not controller.playing


def test_stop_continues_past_failing_node(controller, caplog, monkeypatch):
    "A node that fails to dispose is logged and the rest are still released"
    asyncio.run(controller.start(THETA))
    session = controller.active_session

    def broken_dispose():
        raise RuntimeError("dispose failed")

    monkeypatch.setattr(session.left_oscillator, "dispose", broken_dispose)
    with caplog.at_level(logging.WARNING, logger="brainwave.session"):
        controller.stop()
    assert "dispose failed" in caplog.text
    assert not controller.playing
    for node in session.nodes()[1:]:
        assert node.disposed


def test_start_failure_when_context_unavailable(broken_context, caplog):
    "A context that cannot resume leaves nothing playing and reports the error"
    controller = SessionController(broken_context)
    with caplog.at_level(logging.ERROR, logger="brainwave.session"):
        with pytest.raises(StartFailedError) as excinfo:
            asyncio.run(controller.start(THETA))
    assert isinstance(excinfo.value.cause, ContextUnavailableError)
    assert excinfo.value.__cause__ is excinfo.value.cause
    assert not controller.playing
    assert controller.active_session is None
    assert _destination_inputs(broken_context) == []
    assert "Audio playback error" in caplog.text
    # Stopping after a failed start is still safe
    controller.teardown()


def test_start_failure_when_resume_raises_unexpectedly(context, monkeypatch):
    "Unexpected resume errors are reported as an unavailable context"

    async def resume():
        raise OSError("PortAudio library not found")

    monkeypatch.setattr(context, "resume", resume)
    controller = SessionController(context)
    with pytest.raises(StartFailedError) as excinfo:
        asyncio.run(controller.start(THETA))
    assert isinstance(excinfo.value.cause, ContextUnavailableError)
    assert not controller.playing


def test_start_failure_on_allocation_releases_partial_nodes(controller, monkeypatch):
    "If the second oscillator cannot be built, the first is released"
    real_oscillator = session_module.Oscillator
    built = []

    def flaky_oscillator(*args, **kwargs):
        if built:
            raise RuntimeError("out of voices")
        node = real_oscillator(*args, **kwargs)
        built.append(node)
        return node

    monkeypatch.setattr(session_module, "Oscillator", flaky_oscillator)
    with pytest.raises(StartFailedError) as excinfo:
        asyncio.run(controller.start(THETA))
    assert isinstance(excinfo.value.cause, NodeAllocationError)
    assert not controller.playing
    assert controller.active_session is None
    assert built[0].disposed
    assert _destination_inputs(controller.context) == []

    # A later start succeeds once allocation works again
    monkeypatch.setattr(session_module, "Oscillator", real_oscillator)
    asyncio.run(controller.start(THETA))
    assert controller.playing


def test_test_tone_plays_and_is_released(context):
    "The diagnostic tone sounds for one second and is disposed on stop"
    controller = SessionController(context, test_tone=True)
    asyncio.run(controller.start(THETA))
    tone = controller._test_oscillator  # pylint: disable=protected-access
    assert tone is not None
    assert tone.type == "triangle"
    assert tone.frequency.value == 440.0
    assert tone.state == "started"

    context.render(int(1.5 * SAMPLE_RATE))
    assert tone.state == "stopped"

    controller.stop()
    assert tone.disposed
    assert _destination_inputs(context) == []


def test_finished_test_tone_is_released_on_next_change(context):
    "Once the diagnostic tone has ended it leaves the graph"
    controller = SessionController(context, test_tone=True)
    asyncio.run(controller.start(THETA))
    tone = controller._test_oscillator  # pylint: disable=protected-access
    assert len(_destination_inputs(context)) == 3

    controller.apply_parameters(THETA)
    assert not tone.disposed

    context.render(int(1.5 * SAMPLE_RATE))
    controller.apply_parameters(THETA)
    assert tone.disposed
    assert len(_destination_inputs(context)) == 2
    assert controller.playing
    controller.teardown()


def test_start_failure_when_oscillator_start_raises(controller, monkeypatch):
    "If an oscillator fails to start, the whole pair is silenced and released"
    real_start = Oscillator.start
    started = []

    def flaky_start(self, when=None):
        started.append(self)
        if len(started) > 1:
            raise RuntimeError("voice stolen")
        return real_start(self, when)

    monkeypatch.setattr(Oscillator, "start", flaky_start)
    with pytest.raises(StartFailedError) as excinfo:
        asyncio.run(controller.start(THETA))
    assert isinstance(excinfo.value.cause, RuntimeError)
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert not controller.playing
    assert controller.active_session is None
    assert len(started) == 2
    assert all(oscillator.disposed for oscillator in started)
    assert started[0].state == "stopped"
    assert _destination_inputs(controller.context) == []
    assert not np.any(controller.context.render(512))


def test_no_test_tone_by_default(controller):
    "Only the two session channels reach the output by default"
    asyncio.run(controller.start(THETA))
    assert len(_destination_inputs(controller.context)) == 2


def test_teardown_via_context_manager(context):
    "Leaving the controller's with-block releases the session"
    with SessionController(context) as controller:
        asyncio.run(controller.start(THETA))
        nodes = controller.active_session.nodes()
    assert not controller.playing
    assert all(node.disposed for node in nodes)
