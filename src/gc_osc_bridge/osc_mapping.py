"""
Translate controller events into OSC messages.

The address namespace is fixed so receivers can bind to it:

  Buttons : /b/<name>   (down -> int32 1, up -> no arguments)
  Axes    : /a/<name>   (int32 raw value, only outside the dead zone)

Nothing in here touches SDL or sockets; ``map_event`` is a pure function.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple, Union

AXIS_MIN = -32768
AXIS_MAX = 32767
DEAD_ZONE_THRESHOLD = 10_000
BUTTON_PRESSED = 1


class ControllerButton(Enum):
    A = "a"
    B = "b"
    X = "x"
    Y = "y"
    BACK = "back"
    GUIDE = "guide"
    START = "start"
    LEFTSTICK = "leftstick"
    RIGHTSTICK = "rightstick"
    LEFTSHOULDER = "leftshoulder"
    RIGHTSHOULDER = "rightshoulder"
    DPAD_UP = "dpup"
    DPAD_DOWN = "dpdown"
    DPAD_LEFT = "dpleft"
    DPAD_RIGHT = "dpright"


class ControllerAxis(Enum):
    LEFTX = "leftx"
    LEFTY = "lefty"
    RIGHTX = "rightx"
    RIGHTY = "righty"
    TRIGGERLEFT = "lefttrigger"
    TRIGGERRIGHT = "righttrigger"


BUTTON_ADDRESSES: Mapping[ControllerButton, str] = {
    ControllerButton.A: "/b/a",
    ControllerButton.B: "/b/b",
    ControllerButton.X: "/b/x",
    ControllerButton.Y: "/b/y",
    ControllerButton.BACK: "/b/back",
    ControllerButton.GUIDE: "/b/guide",
    ControllerButton.START: "/b/start",
    ControllerButton.LEFTSTICK: "/b/leftstick",
    ControllerButton.RIGHTSTICK: "/b/rightstick",
    ControllerButton.LEFTSHOULDER: "/b/leftshoulder",
    ControllerButton.RIGHTSHOULDER: "/b/rightshoulder",
    ControllerButton.DPAD_UP: "/b/dpup",
    ControllerButton.DPAD_DOWN: "/b/dpdown",
    ControllerButton.DPAD_LEFT: "/b/dpleft",
    ControllerButton.DPAD_RIGHT: "/b/dpright",
}

AXIS_ADDRESSES: Mapping[ControllerAxis, str] = {
    ControllerAxis.LEFTX: "/a/leftx",
    ControllerAxis.LEFTY: "/a/lefty",
    ControllerAxis.RIGHTX: "/a/rightx",
    ControllerAxis.RIGHTY: "/a/righty",
    ControllerAxis.TRIGGERLEFT: "/a/lefttrigger",
    ControllerAxis.TRIGGERRIGHT: "/a/righttrigger",
}


class UnmappedInputError(LookupError):
    """Raised when a button or axis has no OSC address assigned."""


def check_address_tables(
    buttons: Mapping[ControllerButton, str] = BUTTON_ADDRESSES,
    axes: Mapping[ControllerAxis, str] = AXIS_ADDRESSES,
) -> None:
    """
    Verify the address tables cover every button/axis exactly once.

    Raises UnmappedInputError for a missing entry and ValueError when two
    inputs would share an address.
    """
    missing = [b.name for b in ControllerButton if b not in buttons]
    missing += [a.name for a in ControllerAxis if a not in axes]
    if missing:
        raise UnmappedInputError(f"No OSC address for: {', '.join(missing)}")
    entries = [(b.name, addr) for b, addr in buttons.items()]
    entries += [(a.name, addr) for a, addr in axes.items()]
    seen: Dict[str, str] = {}
    for source, address in entries:
        if address in seen:
            raise ValueError(f"OSC address {address} used by both {seen[address]} and {source}")
        seen[address] = source


check_address_tables()


@dataclass(frozen=True)
class ButtonDown:
    button: ControllerButton
    terminal = False


@dataclass(frozen=True)
class ButtonUp:
    button: ControllerButton
    terminal = False


@dataclass(frozen=True)
class AxisMotion:
    axis: ControllerAxis
    value: int
    terminal = False


@dataclass(frozen=True)
class ControllerRemoved:
    instance_id: int
    terminal = False


@dataclass(frozen=True)
class Quit:
    terminal = True


ControllerEvent = Union[ButtonDown, ButtonUp, AxisMotion, ControllerRemoved, Quit]


@dataclass(frozen=True)
class OutboundMessage:
    address: str
    args: Optional[Tuple[int, ...]] = None

    def describe(self) -> str:
        """Return a compact 'address [args]' string for console output."""
        if self.args is None:
            return self.address
        return f"{self.address} [{', '.join(str(arg) for arg in self.args)}]"


def button_address(button: ControllerButton) -> str:
    try:
        return BUTTON_ADDRESSES[button]
    except KeyError as exc:
        raise UnmappedInputError(f"No OSC address for button {button!r}") from exc


def axis_address(axis: ControllerAxis) -> str:
    try:
        return AXIS_ADDRESSES[axis]
    except KeyError as exc:
        raise UnmappedInputError(f"No OSC address for axis {axis!r}") from exc


def outside_dead_zone(value: int, threshold: int = DEAD_ZONE_THRESHOLD) -> bool:
    """Return True if an axis value lies strictly outside [-threshold, threshold]."""
    return value > threshold or value < -threshold


def map_event(event: ControllerEvent, dead_zone: int = DEAD_ZONE_THRESHOLD) -> Optional[OutboundMessage]:
    """
    Map a controller event to the OSC message it should produce.

    Returns None when nothing should be sent: axis motion inside the dead
    zone, Quit (callers check ``event.terminal``), and any other event kind.
    """
    if isinstance(event, ButtonDown):
        return OutboundMessage(button_address(event.button), (BUTTON_PRESSED,))
    if isinstance(event, ButtonUp):
        # Release carries no arguments; only presses send a value.
        return OutboundMessage(button_address(event.button), None)
    if isinstance(event, AxisMotion):
        if not outside_dead_zone(event.value, dead_zone):
            return None
        return OutboundMessage(axis_address(event.axis), (int(event.value),))
    return None
