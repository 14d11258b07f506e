"""
Bridge an SDL2 GameController to an OSC receiver over UDP.

Every button press, button release and out-of-dead-zone axis movement becomes
one OSC datagram:

  - Button down : /b/<button> 1
  - Button up   : /b/<button>          (no arguments)
  - Axis motion : /a/<axis> <value>    (only when |value| > dead zone)

Usage: gc-osc-bridge OSC_HOST_IP:HOST_PORT OSC_CLIENT_IP:CLIENT_PORT
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from rich.console import Console

from .osc_mapping import AXIS_MAX, DEAD_ZONE_THRESHOLD, ControllerEvent, ControllerRemoved, map_event
from .osc_udp import Endpoint, OscSender, parse_endpoint_arg
from .sdl_input import (
    CONTROLLER_DB_PATH_DEFAULT,
    CONTROLLER_DB_URL_DEFAULT,
    ControllerNotFoundError,
    OpenedController,
    SDLError,
    initialize_sdl,
    list_controllers,
    load_controller_mappings,
    open_first_controller,
    shutdown_sdl,
    update_controller_db,
    wait_events,
)


def parse_dead_zone(value: str) -> int:
    """Validate a dead zone given in raw axis units (0-32767)."""
    try:
        dead_zone = int(value, 10)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid dead zone '{value}'") from exc
    if not 0 <= dead_zone <= AXIS_MAX:
        raise argparse.ArgumentTypeError(f"Dead zone must be between 0 and {AXIS_MAX}")
    return dead_zone


def build_arg_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser for the bridge."""
    parser = argparse.ArgumentParser(description="Bridge an SDL2 game controller to OSC over UDP")
    parser.add_argument(
        "local",
        nargs="?",
        type=parse_endpoint_arg,
        metavar="OSC_HOST_IP:HOST_PORT",
        help="Local IPv4 endpoint to bind for sending.",
    )
    parser.add_argument(
        "remote",
        nargs="?",
        type=parse_endpoint_arg,
        metavar="OSC_CLIENT_IP:CLIENT_PORT",
        help="Remote IPv4 endpoint that receives the OSC messages.",
    )
    parser.add_argument(
        "--dead-zone",
        type=parse_dead_zone,
        default=DEAD_ZONE_THRESHOLD,
        help=f"Axis values within +/- this many raw units are not sent (default {DEAD_ZONE_THRESHOLD}).",
    )
    parser.add_argument("--verbose", action="store_true", help="Print every OSC message as it is sent.")
    parser.add_argument(
        "--include-controller-name",
        action="append",
        default=[],
        help="Only open controllers whose name contains this substring (case-insensitive). Repeatable.",
    )
    parser.add_argument(
        "--list-controllers",
        action="store_true",
        help="List detected controllers with GUIDs and exit.",
    )
    parser.add_argument(
        "--update-controller-db",
        action="store_true",
        help="Download the latest SDL GameController database before loading mappings.",
    )
    parser.add_argument(
        "--controller-db-url",
        default=CONTROLLER_DB_URL_DEFAULT,
        help="Override the URL used to download the SDL GameController database.",
    )
    parser.add_argument(
        "--sdl-mapping",
        action="append",
        default=[],
        help="Path to an SDL2 controller mapping database (e.g. gamecontrollerdb.txt). Repeatable.",
    )
    return parser


@dataclass
class BridgeConfig:
    local: Optional[Endpoint]
    remote: Optional[Endpoint]
    dead_zone: int
    verbose: bool
    include_controller_name: List[str]
    mapping_paths: List[Path]


def build_bridge_config(console: Console, args: argparse.Namespace) -> BridgeConfig:
    """Derive bridge runtime configuration from CLI arguments."""
    default_mapping = CONTROLLER_DB_PATH_DEFAULT
    if args.update_controller_db:
        update_controller_db(console, default_mapping, args.controller_db_url)
    mapping_paths: List[Path] = []
    if default_mapping.exists():
        mapping_paths.append(default_mapping)
    mapping_paths.extend(Path(p) for p in args.sdl_mapping)
    return BridgeConfig(
        local=args.local,
        remote=args.remote,
        dead_zone=args.dead_zone,
        verbose=bool(args.verbose),
        include_controller_name=list(args.include_controller_name),
        mapping_paths=mapping_paths,
    )


def run_bridge_loop(
    events: Iterable[ControllerEvent],
    sender: OscSender,
    console: Console,
    dead_zone: int = DEAD_ZONE_THRESHOLD,
    verbose: bool = False,
) -> int:
    """
    Map and send events one at a time until a terminal event arrives.

    Send failures are reported and the event is dropped; encoding errors
    propagate. Returns the number of datagrams sent.
    """
    sent = 0
    for event in events:
        if event.terminal:
            break
        if isinstance(event, ControllerRemoved):
            console.print(f"[yellow]Controller {event.instance_id} removed; waiting for quit[/yellow]")
            continue
        message = map_event(event, dead_zone)
        if message is None:
            continue
        try:
            sender.send(message)
        except OSError as exc:
            console.print(f"[yellow]Failed to send {message.address} to {sender.destination}: {exc}[/yellow]")
            continue
        sent += 1
        if verbose:
            console.print(f"[dim]{message.describe()}[/dim]")
    return sent


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point: parse args, bind the socket, open a controller and run the bridge loop."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if not args.list_controllers and (args.local is None or args.remote is None):
        parser.error("both OSC_HOST_IP:HOST_PORT and OSC_CLIENT_IP:CLIENT_PORT are required")
    console = Console()
    config = build_bridge_config(console, args)
    try:
        initialize_sdl()
    except SDLError as exc:
        parser.error(str(exc))
    controller: Optional[OpenedController] = None
    sender: Optional[OscSender] = None
    try:
        load_controller_mappings(console, config.mapping_paths)
        if args.list_controllers:
            list_controllers(console)
            return
        try:
            sender = OscSender(config.local, config.remote)
        except OSError as exc:
            parser.error(f"Can't bind {config.local}: {exc}")
        try:
            controller = open_first_controller(console, config.include_controller_name)
        except (ControllerNotFoundError, SDLError) as exc:
            parser.error(str(exc))
        console.print(f"Controller mapping: {controller.mapping}")
        console.print(f"[green]Sending OSC from {sender.local} to {config.remote}[/green]")
        sent = run_bridge_loop(
            wait_events(controller.instance_id),
            sender,
            console,
            dead_zone=config.dead_zone,
            verbose=config.verbose,
        )
        console.print(f"[cyan]Quit received after {sent} message(s)[/cyan]")
    finally:
        if sender is not None:
            sender.close()
        shutdown_sdl(controller)


if __name__ == "__main__":
    main()
