"""
SDL2 GameController input source.

Opens the first usable GameController and turns SDL events into the
``ControllerEvent`` values understood by ``osc_mapping``. Waiting for the next
event is the only place the bridge blocks.
"""

from __future__ import annotations

import urllib.request
from ctypes import create_string_buffer
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

import sdl2
from rich.console import Console
from rich.table import Table

from .osc_mapping import (
    AxisMotion,
    ButtonDown,
    ButtonUp,
    ControllerAxis,
    ControllerButton,
    ControllerEvent,
    ControllerRemoved,
    Quit,
)

CONTROLLER_DB_URL_DEFAULT = (
    "https://raw.githubusercontent.com/mdqinc/SDL_GameControllerDB/refs/heads/master/gamecontrollerdb.txt"
)
CONTROLLER_DB_PATH_DEFAULT = Path(__file__).parent / "controller_db" / "gamecontrollerdb.txt"

# Controller events must arrive without a focused window.
SDL_HINTS: Dict[bytes, bytes] = {
    sdl2.SDL_HINT_JOYSTICK_ALLOW_BACKGROUND_EVENTS: b"1",
    b"SDL_JOYSTICK_HIDAPI": b"1",
}

SDL_BUTTON_MAP: Dict[int, ControllerButton] = {
    sdl2.SDL_CONTROLLER_BUTTON_A: ControllerButton.A,
    sdl2.SDL_CONTROLLER_BUTTON_B: ControllerButton.B,
    sdl2.SDL_CONTROLLER_BUTTON_X: ControllerButton.X,
    sdl2.SDL_CONTROLLER_BUTTON_Y: ControllerButton.Y,
    sdl2.SDL_CONTROLLER_BUTTON_BACK: ControllerButton.BACK,
    sdl2.SDL_CONTROLLER_BUTTON_GUIDE: ControllerButton.GUIDE,
    sdl2.SDL_CONTROLLER_BUTTON_START: ControllerButton.START,
    sdl2.SDL_CONTROLLER_BUTTON_LEFTSTICK: ControllerButton.LEFTSTICK,
    sdl2.SDL_CONTROLLER_BUTTON_RIGHTSTICK: ControllerButton.RIGHTSTICK,
    sdl2.SDL_CONTROLLER_BUTTON_LEFTSHOULDER: ControllerButton.LEFTSHOULDER,
    sdl2.SDL_CONTROLLER_BUTTON_RIGHTSHOULDER: ControllerButton.RIGHTSHOULDER,
    sdl2.SDL_CONTROLLER_BUTTON_DPAD_UP: ControllerButton.DPAD_UP,
    sdl2.SDL_CONTROLLER_BUTTON_DPAD_DOWN: ControllerButton.DPAD_DOWN,
    sdl2.SDL_CONTROLLER_BUTTON_DPAD_LEFT: ControllerButton.DPAD_LEFT,
    sdl2.SDL_CONTROLLER_BUTTON_DPAD_RIGHT: ControllerButton.DPAD_RIGHT,
}

SDL_AXIS_MAP: Dict[int, ControllerAxis] = {
    sdl2.SDL_CONTROLLER_AXIS_LEFTX: ControllerAxis.LEFTX,
    sdl2.SDL_CONTROLLER_AXIS_LEFTY: ControllerAxis.LEFTY,
    sdl2.SDL_CONTROLLER_AXIS_RIGHTX: ControllerAxis.RIGHTX,
    sdl2.SDL_CONTROLLER_AXIS_RIGHTY: ControllerAxis.RIGHTY,
    sdl2.SDL_CONTROLLER_AXIS_TRIGGERLEFT: ControllerAxis.TRIGGERLEFT,
    sdl2.SDL_CONTROLLER_AXIS_TRIGGERRIGHT: ControllerAxis.TRIGGERRIGHT,
}


class SDLError(RuntimeError):
    """SDL reported a failure (init, enumeration or event wait)."""


class ControllerNotFoundError(RuntimeError):
    """No compatible GameController could be found or opened."""


def sdl_error() -> str:
    error = sdl2.SDL_GetError()
    return error.decode(errors="ignore") if error else "unknown SDL error"


def decode_name(name) -> str:
    if not name:
        return "Unknown"
    return name.decode(errors="ignore") if isinstance(name, bytes) else str(name)


def initialize_sdl() -> None:
    """Apply SDL_HINTS and initialize the GameController subsystem (and events)."""
    for name, value in SDL_HINTS.items():
        sdl2.SDL_SetHint(name, value)
    if sdl2.SDL_Init(sdl2.SDL_INIT_GAMECONTROLLER | sdl2.SDL_INIT_JOYSTICK | sdl2.SDL_INIT_EVENTS) != 0:
        raise SDLError(f"SDL init failed: {sdl_error()}")


def fetch_controller_db(url: str, timeout: float = 20.0) -> bytes:
    """Return the body of a gamecontrollerdb.txt served at url."""
    with urllib.request.urlopen(url, timeout=timeout) as response:
        if response.status != 200:
            raise OSError(f"HTTP {response.status} from {url}")
        return response.read()


def count_db_entries(data: bytes) -> int:
    return sum(1 for line in data.splitlines() if line.strip() and not line.startswith(b"#"))


def update_controller_db(console: Console, destination: Path, url: str) -> bool:
    """Replace the cached controller DB with a fresh copy; a failure leaves the old file alone."""
    console.print(f"[cyan]Fetching SDL controller database from {url}[/cyan]")
    try:
        data = fetch_controller_db(url)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(data)
    except OSError as exc:
        console.print(f"[red]Controller database not updated: {exc}[/red]")
        return False
    console.print(f"[green]Saved {count_db_entries(data)} controller mapping(s) to {destination}[/green]")
    return True


def load_controller_mappings(console: Console, paths: Sequence[Path]) -> int:
    """Feed SDL GameController DB files to SDL; returns the number of mappings added."""
    total = 0
    for mapping_path in paths:
        loaded = sdl2.SDL_GameControllerAddMappingsFromFile(str(mapping_path).encode())
        if loaded < 0:
            console.print(f"[red]Failed to load SDL mapping {mapping_path}: {sdl_error()}[/red]")
            continue
        console.print(f"[green]Loaded {loaded} SDL mapping(s) from {mapping_path}[/green]")
        total += loaded
    return total


def device_guid(index: int) -> str:
    buf = create_string_buffer(33)
    sdl2.SDL_JoystickGetGUIDString(sdl2.SDL_JoystickGetDeviceGUID(index), buf, len(buf))
    return buf.value.decode("ascii", errors="ignore").lower()


def joystick_count() -> int:
    count = sdl2.SDL_NumJoysticks()
    if count < 0:
        raise SDLError(f"Can't enumerate joysticks: {sdl_error()}")
    return count


@dataclass
class DeviceInfo:
    index: int
    is_controller: bool
    name: str
    guid: str


def describe_devices() -> List[DeviceInfo]:
    """Snapshot every joystick SDL knows about, without opening any of them."""
    devices = []
    for index in range(joystick_count()):
        is_controller = bool(sdl2.SDL_IsGameController(index))
        if is_controller:
            name = sdl2.SDL_GameControllerNameForIndex(index)
        else:
            name = sdl2.SDL_JoystickNameForIndex(index)
        devices.append(DeviceInfo(index, is_controller, decode_name(name), device_guid(index)))
    return devices


def list_controllers(console: Console) -> None:
    """Render describe_devices() as a table."""
    devices = describe_devices()
    if not devices:
        console.print("[yellow]No joysticks detected.[/yellow]")
        return
    table = Table(title="Joysticks")
    for column in ("Index", "Kind", "Name", "GUID"):
        table.add_column(column)
    for device in devices:
        kind = "GameController" if device.is_controller else "Joystick (no mapping)"
        table.add_row(str(device.index), kind, device.name, device.guid)
    console.print(table)


@dataclass
class OpenedController:
    controller: sdl2.SDL_GameController
    instance_id: int
    index: int
    name: str
    mapping: str

    def close(self) -> None:
        sdl2.SDL_GameControllerClose(self.controller)


def open_controller(index: int) -> OpenedController:
    """Open an SDL GameController by index."""
    controller = sdl2.SDL_GameControllerOpen(index)
    if not controller:
        raise SDLError(f"Failed to open controller {index}: {sdl_error()}")
    joystick = sdl2.SDL_GameControllerGetJoystick(controller)
    return OpenedController(
        controller=controller,
        instance_id=sdl2.SDL_JoystickInstanceID(joystick),
        index=index,
        name=decode_name(sdl2.SDL_GameControllerName(controller)),
        mapping=decode_name(sdl2.SDL_GameControllerMapping(controller)),
    )


def open_first_controller(console: Console, include_names: Optional[List[str]] = None) -> OpenedController:
    """
    Walk the joystick list and open the first GameController that opens.

    Devices that are not GameControllers, or that fail to open, are reported
    and skipped. Raises ControllerNotFoundError when nothing usable is left.
    """
    available = joystick_count()
    console.print(f"[cyan]{available} joysticks available[/cyan]")
    wanted = [n.lower() for n in include_names or []]
    for index in range(available):
        if not sdl2.SDL_IsGameController(index):
            console.print(f"[yellow]{index} is not a game controller[/yellow]")
            continue
        name = decode_name(sdl2.SDL_GameControllerNameForIndex(index))
        if wanted and all(substr not in name.lower() for substr in wanted):
            console.print(f"[yellow]Skipping controller {index} ({name}) due to name filter[/yellow]")
            continue
        console.print(f"[cyan]Attempting to open controller {index}[/cyan]")
        try:
            opened = open_controller(index)
        except SDLError as exc:
            console.print(f"[red]failed: {exc}[/red]")
            continue
        console.print(f'[green]Success: opened "{opened.name}"[/green]')
        return opened
    raise ControllerNotFoundError("Couldn't open any controller")


def translate_event(event: sdl2.SDL_Event, instance_id: Optional[int] = None) -> Optional[ControllerEvent]:
    """
    Convert one SDL event into a ControllerEvent.

    Events from other devices (when instance_id is given), SDL buttons/axes
    with no logical counterpart, and unrelated event types give None.
    """
    if event.type == sdl2.SDL_QUIT:
        return Quit()
    if event.type == sdl2.SDL_CONTROLLERAXISMOTION:
        if instance_id is not None and event.caxis.which != instance_id:
            return None
        axis = SDL_AXIS_MAP.get(event.caxis.axis)
        if axis is None:
            return None
        return AxisMotion(axis, int(event.caxis.value))
    if event.type in (sdl2.SDL_CONTROLLERBUTTONDOWN, sdl2.SDL_CONTROLLERBUTTONUP):
        if instance_id is not None and event.cbutton.which != instance_id:
            return None
        button = SDL_BUTTON_MAP.get(event.cbutton.button)
        if button is None:
            return None
        if event.type == sdl2.SDL_CONTROLLERBUTTONDOWN:
            return ButtonDown(button)
        return ButtonUp(button)
    if event.type == sdl2.SDL_CONTROLLERDEVICEREMOVED:
        if instance_id is not None and event.cdevice.which != instance_id:
            return None
        return ControllerRemoved(event.cdevice.which)
    return None


def wait_events(instance_id: Optional[int] = None) -> Iterator[ControllerEvent]:
    """Block on SDL_WaitEvent and yield controller events until Quit (inclusive)."""
    event = sdl2.SDL_Event()
    while True:
        if sdl2.SDL_WaitEvent(event) == 0:
            raise SDLError(f"SDL_WaitEvent failed: {sdl_error()}")
        translated = translate_event(event, instance_id)
        if translated is None:
            continue
        yield translated
        if translated.terminal:
            return


def shutdown_sdl(controller: Optional[OpenedController] = None) -> None:
    """Close the controller (if any) and the SDL subsystems."""
    if controller is not None:
        controller.close()
    sdl2.SDL_Quit()
