"""Interface factory.

The composition root owns one :class:`InterfaceFactory`. It builds transports
by type, shares a single pub/sub interface between every caller that asks
for one, and owns the broker connection when it had to create it.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import assert_never

from pylotusim._mqtt import MessageBus, MqttConnection
from pylotusim.clock import FrameClock
from pylotusim.config import BridgeConfig
from pylotusim.exceptions import LotusimTransportError, LotusimUnknownInterfaceError
from pylotusim.interfaces.base import BaseInterface
from pylotusim.interfaces.pubsub import PubSubInterface
from pylotusim.interfaces.tcpip import TcpIpInterface

_logger = logging.getLogger(__name__)


class InterfaceType(StrEnum):
    ROS2 = "ROS2"
    TCPIP = "TCPIP"

    @classmethod
    def parse(cls, name: str | InterfaceType) -> InterfaceType:
        """Case-insensitive lookup.

        Raises
        ------
        LotusimUnknownInterfaceError
            If *name* matches no interface type.
        """
        if isinstance(name, InterfaceType):
            return name
        try:
            return cls(name.strip().upper())
        except ValueError as exc:
            raise LotusimUnknownInterfaceError(name) from exc


class InterfaceFactory:
    """Creates and starts backend interfaces."""

    def __init__(
        self,
        config: BridgeConfig,
        clock: FrameClock,
        *,
        bus: MessageBus | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._clock = clock
        self._bus = bus
        self._owned_connection: MqttConnection | None = None
        self._pubsub: PubSubInterface | None = None
        self._logger = logger or _logger

    @staticmethod
    def available_types() -> list[str]:
        return [member.value for member in InterfaceType]

    @property
    def pubsub(self) -> PubSubInterface | None:
        """The shared pub/sub interface, once created."""
        return self._pubsub

    def create(self, interface_type: str | InterfaceType, namespace: str = "") -> BaseInterface | None:
        """Build, start and return an interface.

        Returns ``None`` (after logging) for an unknown type or when the
        interface fails to start; callers must check before using it.
        """
        try:
            resolved = InterfaceType.parse(interface_type)
        except LotusimUnknownInterfaceError:
            self._logger.error("Interface type '%s' not found.", interface_type)
            return None

        try:
            interface = self._build(resolved)
            interface.start(namespace)
        except LotusimTransportError:
            self._logger.error("Interface %s failed to start", resolved.value, exc_info=True)
            return None
        return interface

    def close(self) -> None:
        """Stop the broker connection if this factory created it."""
        connection, self._owned_connection = self._owned_connection, None
        if connection is not None:
            connection.stop()

    def _build(self, interface_type: InterfaceType) -> BaseInterface:
        match interface_type:
            case InterfaceType.ROS2:
                if self._pubsub is None:
                    self._pubsub = PubSubInterface(config=self._config, clock=self._clock, bus=self._ensure_bus())
                return self._pubsub
            case InterfaceType.TCPIP:
                return TcpIpInterface(config=self._config, clock=self._clock)
            case _:
                assert_never(interface_type)

    def _ensure_bus(self) -> MessageBus:
        if self._bus is None:
            connection = MqttConnection.from_config(self._config)
            connection.start()
            self._owned_connection = connection
            self._bus = connection
        return self._bus
