from __future__ import annotations

import json
import socket
import threading
import time
from collections.abc import Callable, Iterator

import pytest

from pylotusim.clock import FrameClock
from pylotusim.config import BridgeConfig
from pylotusim.exceptions import LotusimTransportError
from pylotusim.interfaces.tcpip import TcpIpInterface, _CommandFramer


def _config(**overrides: object) -> BridgeConfig:
    values: dict[str, object] = {"interface_type": "TCPIP", "bind_host": "127.0.0.1", "port": 0}
    values.update(overrides)
    return BridgeConfig(**values)  # type: ignore[arg-type]


def _clock() -> FrameClock:
    return FrameClock(now=lambda: 0.0)


def _batch(*vessels: dict[str, object]) -> bytes:
    return json.dumps({"VesselsInfo": list(vessels)}).encode()


def _vessel(name: str, *, stamp: float = 1.0, rpm: float = 50.0) -> dict[str, object]:
    return {
        "name": name,
        "time": stamp,
        "position": {"x": 1, "y": 2, "z": 3},
        "rotation": {"x": 0, "y": 0, "z": 0, "w": 1},
        "thrusters": [{"name": "t1", "rpm": rpm}],
    }


def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def running() -> Iterator[TcpIpInterface]:
    interface = TcpIpInterface(config=_config(), clock=_clock())
    interface.start("ns")
    try:
        yield interface
    finally:
        interface.destroy()


class _CountingLock:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.acquisitions = 0

    def __enter__(self) -> bool:
        self.acquisitions += 1
        return self._lock.__enter__()

    def __exit__(self, *exc_info: object) -> None:
        self._lock.__exit__(*exc_info)


class TestTelemetry:
    def test_datagram_stages_transformed_pose_and_ratio(self) -> None:
        clock = _clock()
        interface = TcpIpInterface(config=_config(), clock=clock)
        interface._handle_datagram(_batch(_vessel("a/b")))  # type: ignore[attr-defined]
        clock.advance(0.1)

        interface.update()
        frame = interface.staged.drain()

        assert list(frame.poses) == ["a.b"]
        assert frame.poses["a.b"].position.as_tuple() == (1.0, 3.0, 2.0)
        assert frame.actuator_ratios == {"a.b/t1": pytest.approx(0.5)}

    def test_nothing_staged_once_render_time_catches_up(self) -> None:
        clock = _clock()
        interface = TcpIpInterface(config=_config(), clock=clock)
        interface._handle_datagram(_batch(_vessel("boat", stamp=1.0)))  # type: ignore[attr-defined]
        clock.advance(1.5)

        interface.update()

        assert interface.interpolation_ratio() == 0.0
        assert interface.staged.drain().is_empty

    def test_ratio_formula(self) -> None:
        clock = _clock()
        interface = TcpIpInterface(config=_config(), clock=clock)
        assert interface.interpolation_ratio() == 0.0

        interface._handle_datagram(_batch(_vessel("boat", stamp=1.0)))  # type: ignore[attr-defined]
        clock.advance(0.5)

        assert interface.interpolation_ratio() == pytest.approx((1.0 - 0.5) / 0.5)

    def test_ratio_is_zero_without_frame_delta(self) -> None:
        interface = TcpIpInterface(config=_config(), clock=_clock())
        interface._handle_datagram(_batch(_vessel("boat", stamp=1.0)))  # type: ignore[attr-defined]

        assert interface.interpolation_ratio() == 0.0

    def test_new_batch_replaces_previous_wholesale(self) -> None:
        clock = _clock()
        interface = TcpIpInterface(config=_config(), clock=clock)
        interface._handle_datagram(_batch(_vessel("a"), _vessel("b")))  # type: ignore[attr-defined]
        interface._handle_datagram(_batch(_vessel("c")))  # type: ignore[attr-defined]
        clock.advance(0.1)

        interface.update()

        assert set(interface.staged.drain_poses()) == {"c"}

    def test_omitted_thruster_absent_after_next_drain(self) -> None:
        clock = _clock()
        interface = TcpIpInterface(config=_config(), clock=clock)
        clock.advance(0.1)
        interface._handle_datagram(_batch(_vessel("boat")))  # type: ignore[attr-defined]
        interface.update()
        assert interface.staged.drain_actuator_ratios() == {"boat/t1": pytest.approx(0.5)}

        second = _vessel("boat")
        second["thrusters"] = []
        interface._handle_datagram(_batch(second))  # type: ignore[attr-defined]
        interface.update()

        assert interface.staged.drain_actuator_ratios() == {}
        assert set(interface.staged.drain_poses()) == {"boat"}

    @pytest.mark.parametrize(
        "datagram",
        [
            b'{"other": []}',
            b'{"VesselsInfo": [{"time": 1.0}]}',
            b"\xff\xfe VesselsInfo",
        ],
    )
    def test_bad_datagrams_keep_previous_batch(self, datagram: bytes) -> None:
        clock = _clock()
        interface = TcpIpInterface(config=_config(), clock=clock)
        interface._handle_datagram(_batch(_vessel("boat")))  # type: ignore[attr-defined]

        interface._handle_datagram(datagram)  # type: ignore[attr-defined]
        clock.advance(0.1)
        interface.update()

        assert set(interface.staged.drain_poses()) == {"boat"}

    def test_update_reads_vessel_batch_once(self) -> None:
        clock = _clock()
        interface = TcpIpInterface(config=_config(), clock=clock)
        lock = _CountingLock()
        interface._vessels_lock = lock  # type: ignore[attr-defined]
        interface._handle_datagram(_batch(_vessel("boat")))  # type: ignore[attr-defined]
        clock.advance(0.1)
        lock.acquisitions = 0

        interface.update()

        assert lock.acquisitions == 1
        assert set(interface.staged.drain_poses()) == {"boat"}


class TestCommands:
    def test_ack_and_failed_replies(self) -> None:
        interface = TcpIpInterface(config=_config(), clock=_clock())

        assert interface._handle_command_message('{"cmd": "delete", "name": "boat"}') == b"ACK\r\n"  # type: ignore[attr-defined]
        assert interface._handle_command_message("not json") == b"FAILED\r\n"  # type: ignore[attr-defined]

    def test_failed_message_leaves_queue_unchanged(self) -> None:
        interface = TcpIpInterface(config=_config(), clock=_clock())

        interface._handle_command_message("not json")  # type: ignore[attr-defined]
        interface.update()

        assert interface.staged.drain().is_empty

    def test_deeply_nested_message_fails_cleanly(self) -> None:
        interface = TcpIpInterface(config=_config(), clock=_clock())

        assert interface._handle_command_message("[" * 5000) == b"FAILED\r\n"  # type: ignore[attr-defined]
        assert interface._handle_command_message('{"cmd": "delete", "name": "boat"}') == b"ACK\r\n"  # type: ignore[attr-defined]

    def test_position_field_cannot_bypass_conversion(self) -> None:
        interface = TcpIpInterface(config=_config(), clock=_clock())
        message = '{"cmd": "create", "name": "boat", "type": "tug", "position": {"x": 5, "y": 6, "z": 7}}'
        interface._handle_command_message(message)  # type: ignore[attr-defined]

        interface.update()

        assert interface.staged.drain_to_create()["boat"].pose.position.as_tuple() == (0.0, 0.0, 0.0)

    def test_update_dispatches_queued_commands(self) -> None:
        interface = TcpIpInterface(config=_config(), clock=_clock())
        for message in (
            '{"cmd": "create", "name": "boat_1", "type": "frigate", "pose": {"x": 1, "y": 2, "z": 3}}',
            '{"cmd": "delete", "name": "boat_2"}',
            '{"cmd": "explode", "name": "boat_3"}',
            '{"cmd": "teleport", "name": "boat_4"}',
        ):
            interface._handle_command_message(message)  # type: ignore[attr-defined]

        interface.update()
        frame = interface.staged.drain()

        assert list(frame.to_create) == ["boat_1"]
        request = frame.to_create["boat_1"]
        assert request.asset == "frigate"
        # Single swap at parse, full transform at dispatch.
        assert request.pose.position.as_tuple() == (1.0, 2.0, 3.0)
        assert frame.to_destroy == {"boat_2"}
        assert frame.to_explode == {"boat_3"}

    def test_unknown_command_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        interface = TcpIpInterface(config=_config(), clock=_clock())
        interface._handle_command_message('{"cmd": "teleport", "name": "boat"}')  # type: ignore[attr-defined]

        with caplog.at_level("WARNING"):
            interface.update()

        assert "Unknown command type: teleport" in caplog.text


class TestCommandFramer:
    def test_splits_lines_and_skips_blanks(self) -> None:
        framer = _CommandFramer(max_pending=1024)

        assert framer.feed(b'{"a": 1}\n\n{"b": 2}\n') == ['{"a": 1}', '{"b": 2}']

    def test_unterminated_text_is_a_message(self) -> None:
        framer = _CommandFramer(max_pending=1024)

        assert framer.feed(b'{"a": 1}') == ['{"a": 1}']

    def test_partial_object_waits_for_rest(self) -> None:
        framer = _CommandFramer(max_pending=1024)

        assert framer.feed(b'{"cmd": "del') == []
        assert framer.feed(b'ete", "name": "x"}') == ['{"cmd": "delete", "name": "x"}']

    def test_partial_object_over_limit_is_flushed(self) -> None:
        framer = _CommandFramer(max_pending=4)

        assert framer.feed(b'{"cmd": "del') == ['{"cmd": "del']

    def test_utf8_sequence_split_across_reads(self) -> None:
        framer = _CommandFramer(max_pending=1024)
        encoded = "{\"cmd\": \"delete\", \"name\": \"caf\u00e9\"}\n".encode()
        split = encoded.index(b"\xc3") + 1

        assert framer.feed(encoded[:split]) == []
        assert framer.feed(encoded[split:]) == ["{\"cmd\": \"delete\", \"name\": \"caf\u00e9\"}"]


class TestSockets:
    def test_udp_datagram_reaches_interface(self, running: TcpIpInterface) -> None:
        assert running.port
        running.clock.advance(0.1)
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
            sender.sendto(_batch(_vessel("boat", stamp=5.0)), ("127.0.0.1", running.port))

        assert _wait_for(lambda: running.interpolation_ratio() > 0.0)
        running.update()
        assert set(running.staged.drain_poses()) == {"boat"}

    def test_tcp_connection_survives_bad_message(self, running: TcpIpInterface) -> None:
        assert running.port
        with socket.create_connection(("127.0.0.1", running.port), timeout=2.0) as client:
            client.sendall(b"not json\n")
            assert client.recv(16) == b"FAILED\r\n"
            client.sendall(b'{"cmd": "create", "name": "boat", "type": "tug"}\n')
            assert client.recv(16) == b"ACK\r\n"

        running.update()
        assert "boat" in running.staged.drain_to_create()

    def test_listener_accepts_next_client(self, running: TcpIpInterface) -> None:
        assert running.port
        for name in ("first", "second"):
            with socket.create_connection(("127.0.0.1", running.port), timeout=2.0) as client:
                client.sendall(json.dumps({"cmd": "delete", "name": name}).encode() + b"\n")
                assert client.recv(16) == b"ACK\r\n"

        running.update()
        assert running.staged.drain_to_destroy() == {"first", "second"}

    def test_destroy_with_connected_client_returns_promptly(self) -> None:
        interface = TcpIpInterface(config=_config(), clock=_clock())
        interface.start("ns")
        port = interface.port
        assert port
        threads = [interface._udp_thread, interface._tcp_thread]  # type: ignore[attr-defined]

        with socket.create_connection(("127.0.0.1", port), timeout=2.0) as client:
            client.sendall(b'{"cmd": "delete", "name": "boat"}\n')
            assert client.recv(16) == b"ACK\r\n"

            started = time.monotonic()
            interface.destroy()
            elapsed = time.monotonic() - started

        assert elapsed < 1.0
        assert not any(thread is not None and thread.is_alive() for thread in threads)
        assert not interface.is_running
        assert interface.port is None

    def test_restart_after_destroy(self) -> None:
        interface = TcpIpInterface(config=_config(), clock=_clock())
        interface.start("ns")
        interface.destroy()

        interface.start("other")
        try:
            assert interface.is_running
            assert interface.namespace == "other"
        finally:
            interface.destroy()

    def test_port_in_use_raises_transport_error(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]
            interface = TcpIpInterface(config=_config(port=port), clock=_clock())

            with pytest.raises(LotusimTransportError) as exc_info:
                interface.start("ns")

        assert exc_info.value.endpoint == f"127.0.0.1:{port}"
        assert not interface.is_running

    def test_deeply_nested_message_keeps_listener_alive(self, running: TcpIpInterface) -> None:
        assert running.port
        with socket.create_connection(("127.0.0.1", running.port), timeout=2.0) as client:
            client.sendall(b"[" * 5000 + b"\n")
            assert client.recv(16) == b"FAILED\r\n"
            client.sendall(b'{"cmd": "delete", "name": "boat"}\n')
            assert client.recv(16) == b"ACK\r\n"

        assert running._tcp_thread is not None and running._tcp_thread.is_alive()  # type: ignore[attr-defined]
        running.update()
        assert running.staged.drain_to_destroy() == {"boat"}

    def test_second_interface_on_same_port_raises(self, running: TcpIpInterface) -> None:
        assert running.port
        second = TcpIpInterface(config=_config(port=running.port), clock=_clock())

        with pytest.raises(LotusimTransportError):
            second.start("ns")

        assert not second.is_running
        assert running.is_running
