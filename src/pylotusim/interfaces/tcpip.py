"""UDP/TCP backend transport.

Two daemon threads per instance:

* the telemetry thread receives vessel batches on a UDP socket and replaces
  the current batch wholesale;
* the command thread accepts one TCP client at a time, queues each command
  it reads and answers ``ACK`` or ``FAILED``.

Both sockets share one port number. The render thread drains the queues in
:meth:`TcpIpInterface.update`.
"""

from __future__ import annotations

import codecs
import logging
import socket
import threading

from pylotusim._constants import ACK_TOKEN, FAILED_TOKEN, VESSEL_BATCH_MARKER
from pylotusim.clock import FrameClock
from pylotusim.config import BridgeConfig
from pylotusim.coordinates import gz_pose_to_renderer_pose
from pylotusim.exceptions import LotusimMessageError, LotusimTransportError
from pylotusim.interfaces.base import BaseInterface
from pylotusim.models.commands import CommandKind, StreamCommand, parse_stream_command
from pylotusim.models.geometry import Pose
from pylotusim.models.telemetry import VesselInfo, VesselInfoBatch

_MAX_DATAGRAM_SIZE = 65535
_WAKE_TIMEOUT_SECONDS = 0.2


def _wake_host(host: str) -> str:
    if host in ("", "0.0.0.0"):
        return "127.0.0.1"
    if host == "::":
        return "::1"
    return host


def _has_open_object(text: str) -> bool:
    """Return ``True`` while *text* holds an unterminated JSON object/array."""
    depth = 0
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
    return depth > 0 or in_string


class _CommandFramer:
    """Split a TCP byte stream into command messages.

    Newline-terminated lines are messages. Text without a trailing newline
    is a message too, unless it is an unterminated JSON object, which is
    buffered until the rest arrives (or ``max_pending`` is exceeded).

    Bytes are decoded incrementally, so a UTF-8 sequence split across two
    reads is reassembled before it reaches a message.
    """

    def __init__(self, max_pending: int) -> None:
        self._pending = ""
        self._max_pending = max_pending
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> list[str]:
        data = self._pending + self._decoder.decode(chunk)
        self._pending = ""
        *lines, remainder = data.split("\n")
        messages = [line.strip() for line in lines if line.strip()]
        remainder_text = remainder.strip()
        if remainder_text:
            if _has_open_object(remainder_text) and len(remainder) <= self._max_pending:
                self._pending = remainder
            else:
                messages.append(remainder_text)
        return messages


class TcpIpInterface(BaseInterface):
    """Transport for UDP vessel telemetry plus a TCP command channel."""

    def __init__(
        self,
        *,
        config: BridgeConfig,
        clock: FrameClock,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(config=config, clock=clock, logger=logger)
        self._shutdown = threading.Event()
        self._running = False
        self._bound_port: int | None = None

        self._udp_socket: socket.socket | None = None
        self._udp_thread: threading.Thread | None = None
        self._vessels: list[VesselInfo] = []
        self._vessels_lock = threading.Lock()

        self._listener: socket.socket | None = None
        self._tcp_thread: threading.Thread | None = None
        self._client: socket.socket | None = None
        self._client_lock = threading.Lock()
        self._commands: list[StreamCommand] = []
        self._commands_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def port(self) -> int | None:
        """Port number both sockets are bound to, once started."""
        return self._bound_port

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, namespace: str) -> None:
        """Bind both sockets and start the worker threads.

        The namespace is recorded but unused: this transport is not scoped.

        Raises
        ------
        LotusimTransportError
            If either socket cannot be bound. Nothing is left open.
        """
        if self._running:
            self.destroy()
        self._namespace = namespace
        self._logger.info("Starting TCP/IP interface on %s:%s", self._config.bind_host, self._config.port)

        udp_socket: socket.socket | None = None
        listener: socket.socket | None = None
        try:
            # No SO_REUSEADDR here: a second datagram listener must fail to bind.
            udp_socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            udp_socket.bind((self._config.bind_host, self._config.port))
            port = udp_socket.getsockname()[1]

            listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((self._config.bind_host, port))
            listener.listen(1)
        except OSError as exc:
            for sock in (udp_socket, listener):
                if sock is not None:
                    sock.close()
            raise LotusimTransportError(
                f"Could not bind TCP/IP interface: {exc}",
                endpoint=f"{self._config.bind_host}:{self._config.port}",
            ) from exc

        self._shutdown = threading.Event()
        self._udp_socket = udp_socket
        self._listener = listener
        self._bound_port = port

        self._udp_thread = threading.Thread(
            target=self._receive_udp_data,
            args=(udp_socket, self._shutdown),
            name="lotusim-udp",
            daemon=True,
        )
        self._tcp_thread = threading.Thread(
            target=self._receive_tcp_data,
            args=(listener, self._shutdown),
            name="lotusim-tcp",
            daemon=True,
        )
        self._udp_thread.start()
        self._tcp_thread.start()
        self._running = True
        self._logger.debug("TCP/IP interface listening on port %s", port)

    def destroy(self) -> None:
        """Stop both threads, close every socket and join the threads."""
        self._shutdown.set()
        self._running = False
        host = _wake_host(self._config.bind_host)
        port = self._bound_port

        udp_socket, self._udp_socket = self._udp_socket, None
        if udp_socket is not None:
            if port is not None:
                try:
                    udp_socket.sendto(b"", (host, port))
                except OSError:
                    self._logger.debug("UDP wake-up datagram failed", exc_info=True)
            udp_socket.close()

        listener, self._listener = self._listener, None
        if listener is not None:
            if port is not None:
                try:
                    with socket.create_connection((host, port), timeout=_WAKE_TIMEOUT_SECONDS):
                        pass
                except OSError:
                    self._logger.debug("TCP listener wake-up connect failed", exc_info=True)
            listener.close()
            self._logger.debug("TCP listener stopped")

        with self._client_lock:
            client, self._client = self._client, None
        if client is not None:
            try:
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            client.close()
            self._logger.debug("TCP client closed")

        for thread in (self._udp_thread, self._tcp_thread):
            if thread is None:
                continue
            thread.join(self._config.join_timeout)
            if thread.is_alive():
                self._logger.warning("Thread %s did not stop within %.1fs", thread.name, self._config.join_timeout)
        self._udp_thread = None
        self._tcp_thread = None
        self._bound_port = None

    # ------------------------------------------------------------------
    # Update loop
    # ------------------------------------------------------------------

    def update(self) -> None:
        self._process_commands()
        self._update_vessel_poses()

    def interpolation_ratio(self) -> float:
        """Positive only while the backend reports a time ahead of render time.

        ``(backend_time - render_time) / render_delta`` when the first
        vessel's time is strictly greater than render time, else ``0``.
        """
        with self._vessels_lock:
            vessels = self._vessels
        return self._ratio_for(vessels)

    def _ratio_for(self, vessels: list[VesselInfo]) -> float:
        if not vessels:
            return 0.0

        pose_time = vessels[0].time
        current_time = self._clock.time
        delta_time = self._clock.real_delta_time
        if current_time < pose_time and delta_time > 0.0:
            return (pose_time - current_time) / delta_time
        return 0.0

    # ------------------------------------------------------------------
    # UDP handling
    # ------------------------------------------------------------------

    def _receive_udp_data(self, udp_socket: socket.socket, shutdown: threading.Event) -> None:
        while not shutdown.is_set():
            try:
                data, _addr = udp_socket.recvfrom(_MAX_DATAGRAM_SIZE)
            except OSError:
                if shutdown.is_set() or udp_socket.fileno() == -1:
                    break
                self._logger.error("[UDP] Receive failed", exc_info=True)
                continue
            if shutdown.is_set():
                break
            if not data:
                continue
            try:
                self._handle_datagram(data)
            except Exception:
                self._logger.error("[UDP] Unexpected error handling datagram", exc_info=True)

    def _handle_datagram(self, data: bytes) -> None:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            self._logger.warning("[UDP] Dropping non UTF-8 datagram (%d bytes)", len(data))
            return
        if VESSEL_BATCH_MARKER not in text:
            self._logger.debug("[UDP] Ignoring datagram without %s marker", VESSEL_BATCH_MARKER)
            return
        try:
            batch = VesselInfoBatch.parse_payload(text, source="udp")
        except LotusimMessageError as exc:
            self._logger.error("[UDP] Error: %s", exc)
            return

        vessels = batch.with_dotted_names()
        with self._vessels_lock:
            self._vessels = vessels

    # ------------------------------------------------------------------
    # TCP handling
    # ------------------------------------------------------------------

    def _receive_tcp_data(self, listener: socket.socket, shutdown: threading.Event) -> None:
        while not shutdown.is_set():
            try:
                client, address = listener.accept()
            except OSError:
                if shutdown.is_set() or listener.fileno() == -1:
                    break
                self._logger.error("[TCP] Accept failed", exc_info=True)
                continue
            if shutdown.is_set():
                client.close()
                break

            self._logger.info("[TCP] Client connected from %s:%s", *address[:2])
            with self._client_lock:
                self._client = client
            try:
                self._serve_client(client, shutdown)
            finally:
                with self._client_lock:
                    if self._client is client:
                        self._client = None
                client.close()
                self._logger.debug("[TCP] Client disconnected")

    def _serve_client(self, client: socket.socket, shutdown: threading.Event) -> None:
        framer = _CommandFramer(max_pending=self._config.recv_buffer_size * 64)
        while not shutdown.is_set():
            try:
                chunk = client.recv(self._config.recv_buffer_size)
            except OSError:
                if not shutdown.is_set():
                    self._logger.error("[TCP] Receive failed", exc_info=True)
                return
            if not chunk:
                return

            for message in framer.feed(chunk):
                self._logger.debug("[TCP] Received: %s", message)
                try:
                    response = self._handle_command_message(message)
                except Exception:
                    self._logger.error("[TCP] Unexpected error handling message", exc_info=True)
                    response = FAILED_TOKEN
                try:
                    client.sendall(response)
                except OSError:
                    if not shutdown.is_set():
                        self._logger.error("[TCP] Reply failed", exc_info=True)
                    return

    def _handle_command_message(self, message: str) -> bytes:
        try:
            command = parse_stream_command(message)
        except LotusimMessageError as exc:
            self._logger.error("[TCP] Error: %s | msg: %s", exc, message)
            return FAILED_TOKEN

        with self._commands_lock:
            self._commands.append(command)
        return ACK_TOKEN

    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------

    def _process_commands(self) -> None:
        with self._commands_lock:
            commands, self._commands = self._commands, []

        for command in commands:
            self._logger.debug("HandleCmd: %s %s", command.cmd, command.name)
            match command.kind:
                case CommandKind.CREATE:
                    spawn_pose = gz_pose_to_renderer_pose(Pose(position=command.position))
                    self.staged.queue_create(command.name, command.type, spawn_pose)
                case CommandKind.DELETE:
                    self.staged.queue_destroy(command.name)
                case CommandKind.EXPLODE:
                    self.staged.queue_explode(command.name)
                case _:
                    self._logger.warning("Unknown command type: %s", command.cmd)

    def _update_vessel_poses(self) -> None:
        # One snapshot: the ratio must come from the batch that gets staged.
        with self._vessels_lock:
            vessels = self._vessels
        if self._ratio_for(vessels) <= 0.0:
            return

        scale = self._config.spin_ratio_scale
        for vessel in vessels:
            self.staged.set_pose(vessel.name, gz_pose_to_renderer_pose(vessel.pose))
            for thruster in vessel.thrusters:
                self.staged.set_actuator_ratio(f"{vessel.name}/{thruster.name}", thruster.rpm * scale)
