"""
Python helpers for bridging game controllers to OSC.

Expose the mapping and UDP helpers at the package root so callers can import
``gc_osc_bridge`` and access the public API directly. The SDL input source
lives in ``gc_osc_bridge.sdl_input`` and is only loaded by the bridge CLI.
"""

from .osc_mapping import (  # noqa: F401
    AXIS_ADDRESSES,
    BUTTON_ADDRESSES,
    DEAD_ZONE_THRESHOLD,
    AxisMotion,
    ButtonDown,
    ButtonUp,
    ControllerAxis,
    ControllerButton,
    ControllerRemoved,
    OutboundMessage,
    Quit,
    UnmappedInputError,
    map_event,
)
from .osc_udp import (  # noqa: F401
    Endpoint,
    MessageEncodingError,
    OscSender,
    encode,
    encode_message,
    parse_endpoint,
)

__all__ = [
    "AXIS_ADDRESSES",
    "BUTTON_ADDRESSES",
    "DEAD_ZONE_THRESHOLD",
    "AxisMotion",
    "ButtonDown",
    "ButtonUp",
    "ControllerAxis",
    "ControllerButton",
    "ControllerRemoved",
    "OutboundMessage",
    "Quit",
    "UnmappedInputError",
    "map_event",
    "Endpoint",
    "MessageEncodingError",
    "OscSender",
    "encode",
    "encode_message",
    "parse_endpoint",
]
