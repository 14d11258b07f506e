"""
Encode OSC messages and send them over UDP.

Each message is built with python-osc and written as one datagram:

  address (padded string), type tags (",i" or ","), int32 big-endian args

Delivery is best-effort. Nothing is queued or retried; a datagram that the
network drops is simply gone.
"""

from __future__ import annotations

import argparse
import ipaddress
import re
import socket
from typing import Iterable, NamedTuple, Optional

from pythonosc.osc_message_builder import BuildError, OscMessageBuilder

from .osc_mapping import OutboundMessage

PORT_PATTERN = re.compile(r"[0-9]{1,5}")


class Endpoint(NamedTuple):
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class MessageEncodingError(RuntimeError):
    """A well-formed message could not be encoded (an internal bug, not a runtime condition)."""


def parse_endpoint(value: str) -> Endpoint:
    """Parse a literal 'IPv4:port' string; hostnames are not resolved."""
    if ":" not in value:
        raise ValueError(f"Endpoint must look like 'IPv4:port', got '{value}'")
    host, port_str = value.rsplit(":", 1)
    try:
        address = ipaddress.IPv4Address(host)
    except ValueError as exc:
        raise ValueError(f"Invalid IPv4 address '{host}'") from exc
    if not PORT_PATTERN.fullmatch(port_str):
        raise ValueError(f"Invalid port '{port_str}'")
    port = int(port_str, 10)
    if port > 65535:
        raise ValueError(f"Port {port} out of range (0-65535)")
    return Endpoint(str(address), port)


def parse_endpoint_arg(value: str) -> Endpoint:
    """argparse ``type=`` wrapper around parse_endpoint."""
    try:
        return parse_endpoint(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def encode(address: str, args: Optional[Iterable[int]] = None) -> bytes:
    """Encode an OSC message with optional int32 arguments into a datagram."""
    builder = OscMessageBuilder(address=address)
    for arg in args or ():
        builder.add_arg(arg, arg_type=OscMessageBuilder.ARG_TYPE_INT)
    try:
        return builder.build().dgram
    except BuildError as exc:
        raise MessageEncodingError(f"Could not encode {address} {list(args or ())}: {exc}") from exc


def encode_message(message: OutboundMessage) -> bytes:
    return encode(message.address, message.args)


class OscSender:
    """
    Owns the UDP socket used to push OSC datagrams at a single destination.

    Example:
        with OscSender(Endpoint("0.0.0.0", 9000), Endpoint("192.168.1.20", 8000)) as sender:
            sender.send(OutboundMessage("/b/a", (1,)))
    """

    def __init__(self, local: Endpoint, destination: Endpoint) -> None:
        """Bind the local endpoint; raises OSError if the bind fails."""
        self.destination = destination
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            self.sock.bind((local.host, local.port))
        except OSError:
            self.sock.close()
            raise
        self.local = Endpoint(*self.sock.getsockname()[:2])

    def send(self, message: OutboundMessage) -> int:
        """Encode and send one message; returns the number of bytes written."""
        return self.sock.sendto(encode_message(message), (self.destination.host, self.destination.port))

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "OscSender":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
