"""Print OSC messages arriving on a UDP port (handy for checking the bridge output)."""

from __future__ import annotations

import argparse
import datetime
from typing import Any, List, Optional, Sequence, Tuple

from pythonosc.dispatcher import Dispatcher
from pythonosc.osc_server import BlockingOSCUDPServer
from rich.console import Console

from .osc_udp import Endpoint, parse_endpoint_arg


def format_message(
    address: str,
    args: Sequence[Any],
    sender: Optional[Tuple[str, int]] = None,
    now: Optional[datetime.datetime] = None,
) -> str:
    """Render one received message as 'HH:MM:SS.mmm | host:port | /addr arg ...'."""
    ts = (now or datetime.datetime.now()).strftime("%H:%M:%S.%f")[:-3]
    origin = f"{sender[0]}:{sender[1]}" if sender else "?"
    rendered = " ".join(str(arg) for arg in args)
    return f"{ts} | {origin} | {address} {rendered}".rstrip()


def build_dispatcher(console: Console) -> Dispatcher:
    dispatcher = Dispatcher()

    def _print(client_address: Tuple[str, int], address: str, *args: Any) -> None:
        console.print(format_message(address, args, client_address), markup=False, highlight=False)

    dispatcher.set_default_handler(_print, needs_reply_address=True)
    return dispatcher


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Print OSC messages received over UDP")
    parser.add_argument(
        "-l",
        "--listen",
        type=parse_endpoint_arg,
        default=Endpoint("127.0.0.1", 8000),
        help="IPv4:port to listen on (default: 127.0.0.1:8000)",
    )
    args = parser.parse_args(argv)
    console = Console()

    try:
        server = BlockingOSCUDPServer((args.listen.host, args.listen.port), build_dispatcher(console))
    except OSError as exc:
        parser.error(f"Can't bind {args.listen}: {exc}")
    console.print(f"[cyan]Listening for OSC on {args.listen} ... Ctrl+C to stop[/cyan]")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
