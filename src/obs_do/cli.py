"""
Command line interface.

Usage::

    obs-do toggle-stream
    obs-do toggle-mute "Mic/Aux"
    obs-do set-volume "Mic/Aux" -6dB
    obs-do fade-input "Mic/Aux" 50% 2
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from anyio import (
    TASK_STATUS_IGNORED,
    CancelScope,
    create_task_group,
    open_signal_receiver,
)
from anyio.abc import TaskStatus

from .client import ObsClient
from .config import Settings
from .errors import Interrupted, ObsConnectionError, ObsDoError
from .fader import fade, validate_duration
from .volume import VolumeSpec, parse_duration, parse_volume

__all__ = ["main", "build_parser", "parse_command", "dispatch", "run"]

logger = logging.getLogger(__name__)

DEFAULT_INPUT = "Mic/Aux"
DEFAULT_FADE_DURATION = "5"

# Volumes can be negative ("-6dB"), so arguments of these commands may start
# with a hyphen.
HYPHEN_VALUE_COMMANDS = ("set-volume", "fade-input")
GLOBAL_OPTIONS_WITH_VALUE = ("--host", "--port", "--password-file")

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dataclass(frozen=True)
class ToggleStream:
    def __str__(self) -> str:
        return "toggle-stream"


@dataclass(frozen=True)
class ToggleRecord:
    def __str__(self) -> str:
        return "toggle-record"


@dataclass(frozen=True)
class ToggleMute:
    input: str

    def __str__(self) -> str:
        return f"toggle-mute {self.input}"


@dataclass(frozen=True)
class SetScene:
    scene: str

    def __str__(self) -> str:
        return f"set-scene {self.scene}"


@dataclass(frozen=True)
class SetVolume:
    input: str
    volume: VolumeSpec

    def __str__(self) -> str:
        return f"set-volume {self.input} {self.volume}"


@dataclass(frozen=True)
class FadeInput:
    input: str
    volume: VolumeSpec
    duration: float

    def __str__(self) -> str:
        return f"fade-input {self.input} {self.volume} {self.duration}s"


Command = Union[ToggleStream, ToggleRecord, ToggleMute, SetScene, SetVolume, FadeInput]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="obs-do", description="Control a running OBS instance."
    )
    parser.add_argument("--host", help="OBS websocket host (default: localhost)")
    parser.add_argument("--port", type=int, help="OBS websocket port (default: 4455)")
    parser.add_argument(
        "--password-file",
        type=Path,
        help="file containing the websocket password",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("-q", "--quiet", action="count", default=0)

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("toggle-stream", help="Start or stop streaming.")
    commands.add_parser("toggle-record", help="Start or stop recording.")

    toggle_mute = commands.add_parser("toggle-mute", help="Mutes the given input.")
    toggle_mute.add_argument("input", nargs="?", default=DEFAULT_INPUT)

    set_scene = commands.add_parser("set-scene", help="Switch the program scene.")
    set_scene.add_argument("scene")

    set_volume = commands.add_parser(
        "set-volume", help="Sets the volume of the given input."
    )
    set_volume.add_argument("input", nargs="?", default=DEFAULT_INPUT)
    set_volume.add_argument(
        "volume",
        help="in dB for absolute volume (-6dB), or %% (50%%). "
        "Without unit, it's interpreted as %%.",
    )

    fade_input = commands.add_parser(
        "fade-input",
        help="Fades from the current input volume to the given volume, "
        "in dB or %%, over the given time in seconds.",
    )
    fade_input.add_argument("input", nargs="?", default=DEFAULT_INPUT)
    fade_input.add_argument("volume", help="target volume, in dB or %%")
    fade_input.add_argument(
        "duration",
        nargs="?",
        default=DEFAULT_FADE_DURATION,
        help="duration of the fade in seconds, with or without 's' (default: 5)",
    )

    return parser


def _allow_hyphen_values(argv: list[str]) -> list[str]:
    """
    Insert "--" after `set-volume` or `fade-input`, so that argparse accepts
    values like "-6dB". Only the subcommand itself (the first positional
    after the global options) is considered.
    """
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in GLOBAL_OPTIONS_WITH_VALUE:
            i += 2
        elif arg.startswith("-"):
            i += 1
        else:
            break
    else:
        return argv

    if argv[i] not in HYPHEN_VALUE_COMMANDS:
        return argv

    rest = argv[i + 1 :]
    if any(a in ("--", "-h", "--help") for a in rest):
        return argv
    return argv[: i + 1] + ["--"] + rest


def parse_command(args: argparse.Namespace) -> Command:
    """
    Turn the parsed arguments into a command. Volumes and durations are
    validated here, before connecting to OBS.
    """
    if args.command == "toggle-stream":
        return ToggleStream()
    if args.command == "toggle-record":
        return ToggleRecord()
    if args.command == "toggle-mute":
        return ToggleMute(args.input)
    if args.command == "set-scene":
        return SetScene(args.scene)
    if args.command == "set-volume":
        return SetVolume(args.input, parse_volume(args.volume))
    if args.command == "fade-input":
        duration = parse_duration(args.duration)
        validate_duration(duration)
        return FadeInput(args.input, parse_volume(args.volume), duration)

    raise ValueError(f"Unknown command: {args.command}")


async def dispatch(client: ObsClient, command: Command) -> None:
    if isinstance(command, ToggleStream):
        active = await client.toggle_stream()
        logger.info("Streaming %s.", "started" if active else "stopped")
    elif isinstance(command, ToggleRecord):
        active = await client.toggle_record()
        logger.info("Recording %s.", "started" if active else "stopped")
    elif isinstance(command, ToggleMute):
        muted = await client.input(command.input).toggle_mute()
        logger.info("%s is %s.", command.input, "muted" if muted else "unmuted")
    elif isinstance(command, SetScene):
        await client.set_current_scene(command.scene)
    elif isinstance(command, SetVolume):
        await client.input(command.input).set_volume(command.volume)
    elif isinstance(command, FadeInput):
        await fade(client, command.input, command.volume, command.duration)
    else:
        raise TypeError(f"Unknown command: {command!r}")


async def _cancel_on_signal(
    scope: CancelScope,
    received: list[str],
    *,
    task_status: TaskStatus[None] = TASK_STATUS_IGNORED,
) -> None:
    with open_signal_receiver(*STOP_SIGNALS) as signals:
        task_status.started()
        async for signum in signals:
            name = signal.Signals(signum).name
            logger.warning("Received %s, stopping.", name)
            received.append(name)
            scope.cancel()
            return


async def _connect_and_dispatch(
    settings: Settings, password: str | None, command: Command
) -> None:
    async with ObsClient.create(
        settings.host,
        settings.port,
        password,
        handshake_timeout=settings.handshake_timeout,
    ) as client:
        await dispatch(client, command)


async def run(settings: Settings, command: Command) -> None:
    """
    Connect to OBS and execute `command`. SIGINT or SIGTERM cancel the
    command at its next suspension point, after which `Interrupted` is raised.
    """
    password = settings.load_password()
    received: list[str] = []
    error: ObsDoError | None = None

    async with create_task_group() as tg:
        if sys.platform != "win32":
            await tg.start(_cancel_on_signal, tg.cancel_scope, received)

        try:
            await _connect_and_dispatch(settings, password, command)
        except ObsDoError as e:
            # Re-raised outside the task group, so it isn't wrapped in an
            # exception group.
            error = e
        finally:
            tg.cancel_scope.cancel()

    if received:
        raise Interrupted(received[0])
    if error is not None:
        raise error


def _connection_help(error: ObsConnectionError, password_file: Path) -> str:
    return f"""\
Could not connect to OBS over WebSocket.

- Make sure OBS is running, and that 'Enable WebSocket server' is checked under
  Tools -> WebSocket Server Settings. If that menu item does not appear for you,
  your OBS has not been built with WebSocket support.

- If your server requires a password, make sure that you have it written in
  {password_file}

ERROR message:
    {error}"""


def _configure_logging(verbosity: int) -> None:
    if verbosity > 0:
        level = logging.DEBUG
    elif verbosity < 0:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level, format="%(levelname)s: %(message)s", stream=sys.stderr
    )


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    args = build_parser().parse_args(_allow_hyphen_values(argv))
    _configure_logging(args.verbose - args.quiet)

    try:
        command = parse_command(args)
    except ObsDoError as e:
        logger.error("%s: %s", args.command, e)
        return 1

    try:
        settings = Settings.from_env()
        if args.host is not None:
            settings.host = args.host
        if args.port is not None:
            settings.port = args.port
        if args.password_file is not None:
            settings.password_file = args.password_file

        asyncio.run(run(settings, command))
    except ObsConnectionError as e:
        logger.error("%s", _connection_help(e, settings.resolve_password_file()))
        return 1
    except Interrupted as e:
        logger.warning("%s: %s.", command, e)
        return 130
    except ObsDoError as e:
        logger.error("%s: %s", command, e)
        return 1
    except KeyboardInterrupt:
        logger.warning("%s: interrupted.", command)
        return 130

    return 0
