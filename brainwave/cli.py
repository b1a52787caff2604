"""Command-line player for live binaural beat sessions."""

import argparse
import asyncio
import logging
import sys
import threading
from typing import List, Optional

from brainwave.audio_graph import AudioContext
from brainwave.bands import BrainwaveBand
from brainwave.data_types import SessionConfig, SessionParameters
from brainwave.exceptions import BrainwaveError
from brainwave.parameter_store import ParameterStore
from brainwave.session import SessionController
from brainwave.utils import apply_overrides, load_yaml_config

logger = logging.getLogger(__name__)

COMMAND_HELP = (
    "Commands: band NAME | beat HZ | volume DB | carrier HZ | status | quit"
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Play a live binaural beat session. Headphones required."
    )
    parser.add_argument(
        "-c", "--config", help="Path to a YAML session configuration."
    )
    parser.add_argument(
        "-b",
        "--band",
        choices=[band.value for band in BrainwaveBand],
        help="Brainwave band; the beat defaults to the band's midpoint.",
    )
    parser.add_argument("--carrier", type=float, help="Carrier frequency in Hz.")
    parser.add_argument("--beat", type=float, help="Beat frequency in Hz.")
    parser.add_argument("--volume", type=float, help="Volume in dB (-40 to 0).")
    parser.add_argument(
        "-d",
        "--duration",
        type=float,
        help="Stop after this many seconds (default: play until interrupted).",
    )
    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Read live parameter changes from standard input.",
    )
    parser.add_argument(
        "--test-tone",
        action="store_true",
        help="Play a short 440Hz test tone when playback starts.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging."
    )
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def build_config(args: argparse.Namespace) -> SessionConfig:
    """Combines the optional YAML configuration with command-line overrides."""
    config = load_yaml_config(args.config) if args.config else SessionConfig()
    return apply_overrides(
        config,
        band=args.band,
        carrier=args.carrier,
        beat=args.beat,
        volume=args.volume,
        test_tone=args.test_tone,
    )


def log_frequencies(params: SessionParameters) -> None:
    logger.info(
        "Left ear: %.1fHz | Right ear: %.1fHz (%s, %.1fHz beat, %.0fdB)",
        params.left_frequency,
        params.right_frequency,
        params.active_band.label,
        params.beat_hz,
        params.volume_db,
    )


def handle_command(store: ParameterStore, line: str) -> bool:
    """Applies one live command. Returns False when the session should end."""
    parts = line.split()
    if not parts:
        return True
    command, args = parts[0].lower(), parts[1:]

    if command in ("quit", "exit", "stop", "q"):
        return False
    if command == "status":
        log_frequencies(store.get_parameters())
        return True
    if command == "band" and len(args) == 1:
        try:
            store.select_band(args[0])
        except BrainwaveError as e:
            logger.error("%s", e)
        return True

    setters = {
        "beat": store.set_beat,
        "volume": store.set_volume,
        "carrier": store.set_carrier,
    }
    if command in setters and len(args) == 1:
        try:
            value = float(args[0])
        except ValueError:
            logger.error("'%s' is not a number.", args[0])
            return True
        if setters[command](value) is False:
            logger.warning(
                "Carrier frequency can only be changed while stopped "
                "with a custom carrier."
            )
        return True

    logger.error("Unknown command '%s'. %s", line.strip(), COMMAND_HELP)
    return True


def _start_stdin_reader(queue: "asyncio.Queue[Optional[str]]") -> None:
    """Feeds standard input lines into ``queue``; None marks end of input."""
    loop = asyncio.get_running_loop()

    def read_lines() -> None:
        for line in sys.stdin:
            loop.call_soon_threadsafe(queue.put_nowait, line)
        loop.call_soon_threadsafe(queue.put_nowait, None)

    # Daemon so a blocked read never holds up interpreter exit
    threading.Thread(target=read_lines, name="stdin-reader", daemon=True).start()


async def _command_loop(store: ParameterStore, duration: Optional[float]) -> None:
    queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
    _start_stdin_reader(queue)
    logger.info(COMMAND_HELP)
    loop = asyncio.get_running_loop()
    deadline = None if duration is None else loop.time() + duration
    while True:
        timeout = None if deadline is None else max(deadline - loop.time(), 0.0)
        try:
            line = await asyncio.wait_for(queue.get(), timeout)
        except asyncio.TimeoutError:
            return
        if line is None or not handle_command(store, line):
            return


async def _wait(duration: Optional[float]) -> None:
    if duration is None:
        await asyncio.Event().wait()
    else:
        await asyncio.sleep(duration)


async def run_session(
    config: SessionConfig,
    duration: Optional[float] = None,
    interactive: bool = False,
    context: Optional[AudioContext] = None,
) -> None:
    """Plays ``config`` until the duration ends, input ends or interruption.

    Raises:
        StartFailedError: If playback cannot be started.
    """
    context = context or AudioContext(
        sample_rate=config.audio.sample_rate, block_size=config.audio.block_size
    )
    controller = SessionController(context, test_tone=config.audio.test_tone)
    store = ParameterStore(controller, config.parameters)
    store.subscribe(log_frequencies)
    try:
        await controller.start(store.get_parameters())
        params = store.get_parameters()
        logger.info(
            "Audio playing: %.1fHz carrier with %.1fHz binaural beat",
            params.carrier_hz,
            params.beat_hz,
        )
        log_frequencies(params)
        logger.info(
            "Remember: You must use headphones to hear binaural beats properly"
        )
        logger.info(
            "Current wave: %s. %s",
            params.active_band.label,
            params.active_band.description,
        )
        if interactive:
            await _command_loop(store, duration)
        else:
            await _wait(duration)
    finally:
        controller.teardown()
        context.close()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = build_config(args)
        logger.debug("Session configuration: %s", config)
        asyncio.run(run_session(config, args.duration, args.interactive))
        logger.info("Session finished.")
    except BrainwaveError as e:
        logger.error("Error: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted; audio stopped.")


if __name__ == "__main__":
    main()
