import socket

import pytest
from pythonosc.osc_message import OscMessage
from rich.console import Console

pytest.importorskip("sdl2")

from gc_osc_bridge.bridge import build_arg_parser, build_bridge_config, main, run_bridge_loop  # noqa: E402
from gc_osc_bridge.osc_mapping import (  # noqa: E402
    AxisMotion,
    ButtonDown,
    ButtonUp,
    ControllerAxis,
    ControllerButton,
    ControllerRemoved,
    OutboundMessage,
    Quit,
)
from gc_osc_bridge.osc_udp import Endpoint, MessageEncodingError, OscSender  # noqa: E402

SEQUENCE = [
    ButtonDown(ControllerButton.A),
    AxisMotion(ControllerAxis.LEFTX, 500),
    AxisMotion(ControllerAxis.LEFTX, 15000),
    ButtonUp(ControllerButton.A),
    Quit(),
]


class RecordingSender:
    destination = Endpoint("127.0.0.1", 9)

    def __init__(self, fail_on=()):
        self.sent = []
        self.fail_on = set(fail_on)

    def send(self, message):
        if message.address in self.fail_on:
            raise OSError("Network is unreachable")
        self.sent.append(message)
        return 0


def quiet_console():
    return Console(record=True, width=200)


def test_loop_sends_messages_in_order_and_stops_on_quit():
    sender = RecordingSender()

    def events():
        yield from SEQUENCE
        yield ButtonDown(ControllerButton.B)

    sent = run_bridge_loop(events(), sender, quiet_console())

    assert sent == 3
    assert sender.sent == [
        OutboundMessage("/b/a", (1,)),
        OutboundMessage("/a/leftx", (15000,)),
        OutboundMessage("/b/a", None),
    ]


def test_loop_over_udp_loopback():
    receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    receiver.bind(("127.0.0.1", 0))
    receiver.settimeout(2.0)
    try:
        with OscSender(Endpoint("127.0.0.1", 0), Endpoint(*receiver.getsockname())) as sender:
            assert run_bridge_loop(iter(SEQUENCE), sender, quiet_console()) == 3
        received = [OscMessage(receiver.recvfrom(1024)[0]) for _ in range(3)]
    finally:
        receiver.close()

    assert [(m.address, m.params) for m in received] == [
        ("/b/a", [1]),
        ("/a/leftx", [15000]),
        ("/b/a", []),
    ]


def test_send_failure_is_reported_and_loop_continues():
    sender = RecordingSender(fail_on={"/b/a"})
    console = quiet_console()
    events = [
        ButtonDown(ControllerButton.A),
        AxisMotion(ControllerAxis.RIGHTY, -20000),
        Quit(),
    ]

    assert run_bridge_loop(events, sender, console) == 1
    assert sender.sent == [OutboundMessage("/a/righty", (-20000,))]
    assert "Failed to send /b/a" in console.export_text()


def test_encoding_error_is_fatal():
    class BrokenSender(RecordingSender):
        def send(self, message):
            raise MessageEncodingError("boom")

    with pytest.raises(MessageEncodingError):
        run_bridge_loop([ButtonDown(ControllerButton.Y), Quit()], BrokenSender(), quiet_console())


def test_removed_controller_is_reported_without_sending():
    sender = RecordingSender()
    console = quiet_console()
    assert run_bridge_loop([ControllerRemoved(7), Quit()], sender, console) == 0
    assert sender.sent == []
    assert "Controller 7 removed" in console.export_text()


def test_verbose_echoes_sent_messages():
    console = quiet_console()
    run_bridge_loop([ButtonDown(ControllerButton.START), Quit()], RecordingSender(), console, verbose=True)
    assert "/b/start [1]" in console.export_text()


def test_dead_zone_option_is_honoured():
    sender = RecordingSender()
    events = [AxisMotion(ControllerAxis.LEFTY, 2000), Quit()]
    run_bridge_loop(events, sender, quiet_console(), dead_zone=1000)
    assert sender.sent == [OutboundMessage("/a/lefty", (2000,))]


def test_arg_parser_builds_config(tmp_path):
    mapping = tmp_path / "extra.txt"
    args = build_arg_parser().parse_args(
        ["0.0.0.0:9000", "192.168.1.20:8000", "--dead-zone", "8000", "--sdl-mapping", str(mapping)]
    )
    config = build_bridge_config(quiet_console(), args)
    assert config.local == Endpoint("0.0.0.0", 9000)
    assert config.remote == Endpoint("192.168.1.20", 8000)
    assert config.dead_zone == 8000
    assert mapping in config.mapping_paths


@pytest.mark.parametrize(
    "argv",
    [
        ["127.0.0.1:9000", "not-an-endpoint"],
        ["127.0.0.1", "127.0.0.1:8000"],
        ["127.0.0.1:9000", "127.0.0.1:8000", "--dead-zone", "40000"],
        ["127.0.0.1:9000"],
    ],
)
def test_bad_arguments_abort_before_startup(argv):
    with pytest.raises(SystemExit) as excinfo:
        main(argv)
    assert excinfo.value.code == 2


@pytest.fixture
def fake_startup(monkeypatch):
    import gc_osc_bridge.bridge as bridge

    shutdowns = []
    monkeypatch.setattr(bridge, "initialize_sdl", lambda: None)
    monkeypatch.setattr(bridge, "load_controller_mappings", lambda console, paths: 0)
    monkeypatch.setattr(bridge, "shutdown_sdl", lambda controller=None: shutdowns.append(controller))
    return shutdowns


def test_bind_failure_aborts_startup(fake_startup, capsys):
    taken = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    taken.bind(("127.0.0.1", 0))
    try:
        port = taken.getsockname()[1]
        with pytest.raises(SystemExit) as excinfo:
            main([f"127.0.0.1:{port}", "127.0.0.1:9"])
    finally:
        taken.close()
    assert excinfo.value.code == 2
    assert "Can't bind" in capsys.readouterr().err
    assert fake_startup == [None]


def test_missing_controller_aborts_startup(fake_startup, monkeypatch, capsys):
    import gc_osc_bridge.bridge as bridge
    from gc_osc_bridge.sdl_input import ControllerNotFoundError

    def no_controller(console, include_names):
        raise ControllerNotFoundError("Couldn't open any controller")

    monkeypatch.setattr(bridge, "open_first_controller", no_controller)
    with pytest.raises(SystemExit) as excinfo:
        main(["127.0.0.1:0", "127.0.0.1:9"])
    assert excinfo.value.code == 2
    assert "Couldn't open any controller" in capsys.readouterr().err
    assert fake_startup == [None]


def test_sdl_init_failure_aborts_startup(monkeypatch, capsys):
    import gc_osc_bridge.bridge as bridge
    from gc_osc_bridge.sdl_input import SDLError

    def broken_init():
        raise SDLError("SDL init failed: no video")

    monkeypatch.setattr(bridge, "initialize_sdl", broken_init)
    with pytest.raises(SystemExit) as excinfo:
        main(["127.0.0.1:0", "127.0.0.1:9"])
    assert excinfo.value.code == 2
    assert "SDL init failed" in capsys.readouterr().err
