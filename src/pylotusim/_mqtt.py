"""Internal MQTT connection used by the pub/sub transport."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol, cast

import paho.mqtt.client as mqtt

from pylotusim.config import BridgeConfig
from pylotusim.exceptions import LotusimTransportError

MessageHandler = Callable[[str, bytes], None]


class MessageBus(Protocol):
    """Structural pub/sub interface used by :class:`PubSubInterface`.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`MqttConnection`) concrete.
    """

    @property
    def is_connected(self) -> bool:
        ...

    def subscribe(self, topic: str, handler: MessageHandler) -> None:
        ...

    def unsubscribe(self, topic: str) -> None:
        ...

    def publish(self, topic: str, payload: bytes | str) -> None:
        ...


class MqttConnection:
    """Threaded paho-mqtt connection with per-topic handlers.

    Handlers run on paho's network thread. Subscriptions are remembered and
    replayed on every (re)connect.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        keepalive: int = 60,
        client_id: str = "",
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._keepalive = keepalive
        self._client_id = client_id
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._connected = threading.Event()
        self._handlers: dict[str, MessageHandler] = {}
        self._handlers_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: BridgeConfig, *, logger: logging.Logger | None = None) -> MqttConnection:
        return cls(
            host=config.broker_host,
            port=config.broker_port,
            keepalive=config.mqtt_keepalive,
            logger=logger,
        )

    @property
    def is_running(self) -> bool:
        """Whether the network loop is running."""
        return self._running

    @property
    def is_connected(self) -> bool:
        """Whether the broker accepted the last connection attempt."""
        return self._connected.is_set()

    def start(self) -> None:
        """Start the network loop and connect in the background.

        Raises
        ------
        LotusimTransportError
            If the broker address cannot be resolved or the loop cannot start.
        """
        self.stop()
        self._logger.debug("MQTT connection start requested host=%s port=%s", self._host, self._port)

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._client_id,
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.is_failure:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected reason=%s", reason_code)
            self._connected.set()
            with self._handlers_lock:
                topics = list(self._handlers)
            for topic in topics:
                self._logger.debug("MQTT subscribing topic=%s", topic)
                c.subscribe(topic, qos=0)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self._connected.clear()
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect

        with self._handlers_lock:
            handlers = dict(self._handlers)
        for topic, handler in handlers.items():
            client.message_callback_add(topic, self._dispatcher(handler))

        try:
            client.connect_async(self._host, self._port, keepalive=self._keepalive)
            client.loop_start()
        except (OSError, ValueError) as exc:
            raise LotusimTransportError(
                f"Could not start MQTT connection: {exc}",
                endpoint=f"{self._host}:{self._port}",
            ) from exc

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Disconnect and stop the network loop if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._connected.clear()

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def subscribe(self, topic: str, handler: MessageHandler) -> None:
        """Route messages on *topic* to *handler*, replacing any previous handler."""
        with self._handlers_lock:
            self._handlers[topic] = handler
        client = self._client
        if client is None:
            return
        client.message_callback_add(topic, self._dispatcher(handler))
        if self.is_connected:
            client.subscribe(topic, qos=0)

    def unsubscribe(self, topic: str) -> None:
        with self._handlers_lock:
            self._handlers.pop(topic, None)
        client = self._client
        if client is None:
            return
        client.message_callback_remove(topic)
        if self.is_connected:
            client.unsubscribe(topic)

    def publish(self, topic: str, payload: bytes | str) -> None:
        """Publish *payload* on *topic* (QoS 0).

        Raises
        ------
        LotusimTransportError
            If the connection has not been started.
        """
        client = self._client
        if client is None:
            raise LotusimTransportError("MQTT connection not started", endpoint=topic)
        info = client.publish(topic, payload, qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._logger.warning("MQTT publish on %s failed rc=%s", topic, info.rc)

    def _dispatcher(self, handler: MessageHandler) -> Callable[[mqtt.Client, Any, mqtt.MQTTMessage], None]:
        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                handler(msg.topic, msg.payload)
            except Exception:
                self._logger.debug("MQTT handler failure topic=%s", msg.topic, exc_info=True)

        return on_message
