"""Streamlit web UI for the Brainwave Binaural Generator.

Audio plays on the machine running the Streamlit server, so run it locally:

    streamlit run brainwave/webui.py
"""

import asyncio
import os
import sys
import weakref
from typing import MutableMapping, Tuple

import streamlit as st

from brainwave.audio_graph import AudioContext
from brainwave.bands import BrainwaveBand
from brainwave.constants import (
    BEAT_STEP,
    CARRIER_PRESETS,
    CARRIER_STEP,
    MAX_CARRIER_FREQUENCY,
    MAX_VOLUME_DB,
    MIN_CARRIER_FREQUENCY,
    MIN_VOLUME_DB,
    VOLUME_STEP,
)
from brainwave.data_types import SessionParameters
from brainwave.exceptions import StartFailedError
from brainwave.parameter_store import ParameterStore
from brainwave.session import SessionController

# Band buttons, two rows
BAND_ROWS = (
    (
        BrainwaveBand.DELTA,
        BrainwaveBand.THETA,
        BrainwaveBand.ALPHA,
        BrainwaveBand.LOW_BETA,
    ),
    (BrainwaveBand.MID_BETA, BrainwaveBand.HIGH_BETA, BrainwaveBand.GAMMA),
)

COLOR_EMOJI = {
    "indigo": "🟣",
    "blue": "🔵",
    "green": "🟢",
    "yellow": "🟡",
    "orange": "🟠",
    "red": "🔴",
    "purple": "🟪",
}

TROUBLESHOOTING = """
1. Make sure your device's volume is turned up
2. Use headphones (required for binaural effects)
3. Click the Start button
4. Enable the test tone in the sidebar to hear a brief tone when starting
5. Increase the volume slider if needed
"""

CARRIER_NOTES = """
- **200 Hz**: Traditional carrier, works well for most people
- **1000 Hz**: Higher carrier, may be more perceptible to some
- **Custom**: Choose your preferred carrier frequency
- The binaural effect comes from the frequency difference between ears
"""

HOW_TO_USE = """
- **HEADPHONES REQUIRED**: binaural beats only work with stereo headphones
- If there is no sound, check your volume settings and headphones
- Find a quiet, comfortable space
- Start with 10-30 minute sessions
- Different brainwaves support different mental states
"""


def band_button_label(band: BrainwaveBand, selected: BrainwaveBand) -> str:
    """Button caption for a band, marked when it is the active one."""
    label = f"{COLOR_EMOJI.get(band.display_color, '')} {band.label}".strip()
    return f"✓ {label}" if band is selected else label


def beat_slider_label(params: SessionParameters) -> str:
    return f"Binaural Beat ({params.active_band.label}): {params.beat_hz} Hz"


def playing_banner(params: SessionParameters) -> Tuple[str, str]:
    """Headline and detail lines shown while audio plays."""
    headline = (
        f"Audio playing: {params.carrier_hz:g}Hz carrier with "
        f"{params.beat_hz:g}Hz binaural beat"
    )
    detail = (
        f"Left ear: {params.left_frequency:g}Hz | "
        f"Right ear: {params.right_frequency:g}Hz"
    )
    return headline, detail


@st.cache_resource
def _get_audio_context() -> AudioContext:
    """One output context per server process."""
    return AudioContext()


def attach_session_audio(state: MutableMapping, context: AudioContext) -> None:
    """Puts a controller and parameter store into ``state`` once.

    The controller is torn down when the store is garbage collected, which
    happens when Streamlit discards the browser session.
    """
    if "store" in state:
        return
    controller = SessionController(context)
    store = ParameterStore(controller)
    weakref.finalize(store, controller.teardown)
    state["controller"] = controller
    state["store"] = store


def _initialize_session_state() -> None:
    attach_session_audio(st.session_state, _get_audio_context())


def _toggle_play() -> None:
    controller: SessionController = st.session_state.controller
    store: ParameterStore = st.session_state.store
    if controller.playing:
        controller.stop()
        return
    try:
        asyncio.run(controller.start(store.get_parameters()))
    except StartFailedError as e:
        st.session_state.start_error = str(e)


def _render_header(store: ParameterStore) -> None:
    title_col, button_col = st.columns([4, 1])
    with title_col:
        st.title("Brainwave Binaural Generator")
    with button_col:
        st.button(
            "Stop" if store.playing else "Start",
            type="primary" if not store.playing else "secondary",
            on_click=_toggle_play,
            width="stretch",
        )
    error = st.session_state.pop("start_error", None)
    if error:
        st.error(f"Audio playback error: {error}")


def _select_band(store: ParameterStore, band: BrainwaveBand) -> None:
    st.session_state.band_epoch = st.session_state.get("band_epoch", 0) + 1
    store.select_band(band)


def _render_band_buttons(store: ParameterStore) -> None:
    selected = store.get_parameters().active_band
    for row in BAND_ROWS:
        columns = st.columns(len(BAND_ROWS[0]))
        for column, band in zip(columns, row):
            with column:
                st.button(
                    band_button_label(band, selected),
                    key=f"band_{band.value}",
                    on_click=_select_band,
                    args=(store, band),
                    width="stretch",
                )


def _render_carrier_controls(store: ParameterStore) -> None:
    params = store.get_parameters()
    st.markdown(f"**Carrier Frequency: {params.carrier_hz:g} Hz**")
    columns = st.columns(len(CARRIER_PRESETS) + 1)
    for column, preset in zip(columns, CARRIER_PRESETS):
        with column:
            st.button(
                f"{preset:g} Hz",
                key=f"carrier_{preset:g}",
                on_click=store.select_carrier_preset,
                args=(preset,),
                disabled=store.playing,
                type=(
                    "primary"
                    if not params.custom_carrier_enabled
                    and params.carrier_hz == preset
                    else "secondary"
                ),
            )
    with columns[-1]:
        st.button(
            "Custom",
            on_click=store.enable_custom_carrier,
            disabled=store.playing,
            type="primary" if params.custom_carrier_enabled else "secondary",
        )

    if params.custom_carrier_enabled:
        carrier = st.slider(
            "Custom carrier (Hz)",
            min_value=MIN_CARRIER_FREQUENCY,
            max_value=MAX_CARRIER_FREQUENCY,
            step=CARRIER_STEP,
            value=float(params.carrier_hz),
            disabled=store.playing,
            key="custom_carrier",
        )
        if carrier != params.carrier_hz:
            store.set_carrier(carrier)


def _render_beat_and_volume(store: ParameterStore) -> None:
    params = store.get_parameters()
    band = params.active_band
    beat = st.slider(
        beat_slider_label(params),
        min_value=band.min_beat_hz,
        max_value=band.max_beat_hz,
        step=BEAT_STEP,
        value=float(params.beat_hz),
        # A fresh key after each band click so the slider shows the midpoint
        key=f"beat_{band.value}_{st.session_state.get('band_epoch', 0)}",
    )
    if beat != params.beat_hz:
        store.set_beat(beat)

    volume = st.slider(
        f"Volume: {params.volume_db:g} dB",
        min_value=MIN_VOLUME_DB,
        max_value=MAX_VOLUME_DB,
        step=VOLUME_STEP,
        value=float(params.volume_db),
        key="volume",
    )
    if volume != params.volume_db:
        store.set_volume(volume)


def _render_sidebar(controller: SessionController) -> None:
    with st.sidebar:
        st.header("Settings")
        controller.test_tone = st.checkbox(
            "Play test tone on start",
            value=controller.test_tone,
            help="A one second 440Hz tone to check your audio output.",
        )
        st.divider()
        with st.expander("Audio Troubleshooting"):
            st.markdown(TROUBLESHOOTING)
            st.markdown("**About Carrier Frequencies:**")
            st.markdown(CARRIER_NOTES)


def _render_guidance(store: ParameterStore) -> None:
    band = store.get_parameters().active_band
    st.subheader(f"Current Wave: {band.label}")
    st.write(band.description)
    st.markdown("**How to Use**")
    st.markdown(HOW_TO_USE)

    if store.playing:
        headline, detail = playing_banner(store.get_parameters())
        st.success(f"{headline}\n\n{detail}")
        st.caption("Remember: You must use headphones to hear binaural beats properly")


def main():
    """Main Streamlit application entry point."""
    st.set_page_config(page_title="Brainwave Binaural Generator", page_icon="🎧")

    _initialize_session_state()
    store: ParameterStore = st.session_state.store

    _render_sidebar(st.session_state.controller)
    _render_header(store)
    _render_band_buttons(store)
    _render_carrier_controls(store)
    _render_beat_and_volume(store)
    _render_guidance(store)


def run() -> None:
    """Console entry point: launches ``streamlit run`` on this file."""
    from streamlit.web import cli as stcli  # pylint: disable=import-outside-toplevel

    sys.argv = ["streamlit", "run", os.path.abspath(__file__)]
    sys.exit(stcli.main())


if __name__ == "__main__":
    main()
