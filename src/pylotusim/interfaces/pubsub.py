"""Pub/sub backend transport.

Subscribes to four namespace-scoped topics on a :class:`MessageBus` and
stages their content for the render thread. The transport owns no threads:
callbacks arrive on the bus's network thread, so every field they touch is
guarded by its own lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from pylotusim._constants import (
    NEUTRAL_BLEND_RATIO,
    RPM_UNIT_SUFFIX,
    TOPIC_RENDERER_CMD,
    TOPIC_RENDERER_POSES,
    TOPIC_SIM_STATS,
    TOPIC_VESSEL_ARRAY_CMD,
    namespaced_topic,
)
from pylotusim._mqtt import MessageBus
from pylotusim.clock import FrameClock
from pylotusim.config import BridgeConfig
from pylotusim.coordinates import gz_pose_to_renderer_pose
from pylotusim.exceptions import LotusimMessageError, LotusimTransportError
from pylotusim.interfaces.base import BaseInterface
from pylotusim.interpolation import blend_pose, clamp
from pylotusim.models.geometry import Pose, Vector3
from pylotusim.models.messages import (
    RendererCommandMessage,
    RendererCommandType,
    SimStats,
    VesselCommand,
    VesselCommandArray,
    VesselPositionArray,
    WindCommand,
)


@dataclass(frozen=True)
class PoseBatch:
    """Every vessel's renderer-space pose at one backend timestamp."""

    timestamp: float
    poses: dict[str, Pose]


def strip_unit_suffix(key: str) -> str:
    """Drop the ``(rpm)`` unit suffix from an actuator key."""
    if RPM_UNIT_SUFFIX in key:
        return key.replace(RPM_UNIT_SUFFIX, "").strip()
    return key


class PubSubInterface(BaseInterface):
    """Transport for the ROS2-style topics, carried over a message bus.

    One instance is shared per :class:`~pylotusim.factory.InterfaceFactory`;
    other components (overlays, sensors) get it from the composition root.
    """

    def __init__(
        self,
        *,
        config: BridgeConfig,
        clock: FrameClock,
        bus: MessageBus,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(config=config, clock=clock, logger=logger)
        self._bus = bus
        self._topics: list[str] = []

        self._current_batch: PoseBatch | None = None
        self._previous_batch: PoseBatch | None = None
        self._batch_lock = threading.Lock()

        self._render_commands: list[RendererCommandMessage] = []
        self._render_commands_lock = threading.Lock()

        self._vessel_cmds: dict[str, VesselCommand] = {}
        self._vessel_cmds_lock = threading.Lock()

        self._sim_stats: SimStats | None = None
        self._sim_stats_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return bool(self._topics)

    @property
    def is_connected(self) -> bool:
        return self._bus.is_connected

    @property
    def bus(self) -> MessageBus:
        return self._bus

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, namespace: str) -> None:
        """Subscribe to the four topics under *namespace*.

        Subscriptions from a previous namespace are dropped first.

        Raises
        ------
        LotusimTransportError
            If the bus rejects a subscription.
        """
        self._logger.info("Starting pub/sub interface with namespace: %s", namespace)
        self._unsubscribe_all()
        self._namespace = namespace

        handlers = {
            TOPIC_RENDERER_POSES: self._on_vessel_positions,
            TOPIC_RENDERER_CMD: self._on_renderer_command,
            TOPIC_VESSEL_ARRAY_CMD: self._on_vessel_commands,
            TOPIC_SIM_STATS: self._on_sim_stats,
        }
        for suffix, handler in handlers.items():
            topic = namespaced_topic(namespace, suffix)
            try:
                self._bus.subscribe(topic, handler)
            except LotusimTransportError:
                self._unsubscribe_all()
                raise
            self._topics.append(topic)
        self._logger.debug("Subscribed to %s", ", ".join(self._topics))

    def destroy(self) -> None:
        """Nothing to release: the bus owns the subscriptions' lifetime."""
        self._logger.debug("Pub/sub interface destroy requested for namespace %s", self._namespace)

    def _unsubscribe_all(self) -> None:
        topics, self._topics = self._topics, []
        for topic in topics:
            try:
                self._bus.unsubscribe(topic)
            except LotusimTransportError:
                self._logger.debug("Unsubscribe from %s failed", topic, exc_info=True)

    # ------------------------------------------------------------------
    # Message handlers (bus thread)
    # ------------------------------------------------------------------

    def _on_vessel_positions(self, topic: str, payload: bytes) -> None:
        try:
            message = VesselPositionArray.parse_payload(payload, source=topic)
        except LotusimMessageError as exc:
            self._logger.warning("Dropping pose batch: %s", exc)
            return

        batch = PoseBatch(
            timestamp=message.timestamp,
            poses={vessel.vessel_name: gz_pose_to_renderer_pose(vessel.pose.to_pose()) for vessel in message.vessels},
        )
        with self._batch_lock:
            self._previous_batch = self._current_batch if self._current_batch is not None else batch
            self._current_batch = batch

    def _on_renderer_command(self, topic: str, payload: bytes) -> None:
        try:
            command = RendererCommandMessage.parse_payload(payload, source=topic)
        except LotusimMessageError as exc:
            self._logger.warning("Dropping render command: %s", exc)
            return
        with self._render_commands_lock:
            self._render_commands.append(command)

    def _on_vessel_commands(self, topic: str, payload: bytes) -> None:
        try:
            array = VesselCommandArray.parse_payload(payload, source=topic)
        except LotusimMessageError as exc:
            self._logger.warning("Dropping vessel commands: %s", exc)
            return
        with self._vessel_cmds_lock:
            for command in array.cmds:
                self._vessel_cmds[command.vessel_name] = command

    def _on_sim_stats(self, topic: str, payload: bytes) -> None:
        try:
            stats = SimStats.parse_payload(payload, source=topic)
        except LotusimMessageError as exc:
            self._logger.warning("Dropping sim stats: %s", exc)
            return
        with self._sim_stats_lock:
            self._sim_stats = stats

    # ------------------------------------------------------------------
    # Update loop (render thread)
    # ------------------------------------------------------------------

    def update(self) -> None:
        self._process_render_commands()
        self._update_vessel_poses()
        self._process_vessel_commands()

    def interpolation_ratio(self) -> float:
        """Blend factor toward the newest batch.

        ``0.5`` until render time passes the batch stamp, then
        ``clamp((batch_time - render_time) / render_delta, min_blend, max_blend)``.
        """
        with self._batch_lock:
            batch = self._current_batch
        if batch is None:
            return NEUTRAL_BLEND_RATIO

        current_time = self._clock.time
        if current_time <= batch.timestamp:
            return NEUTRAL_BLEND_RATIO

        delta_time = self._clock.real_delta_time
        if delta_time <= 0.0:
            return self._config.min_blend
        return clamp((batch.timestamp - current_time) / delta_time, self._config.min_blend, self._config.max_blend)

    def _process_render_commands(self) -> None:
        with self._render_commands_lock:
            commands, self._render_commands = self._render_commands, []

        for command in commands:
            self._logger.debug("HandleCommand: %s %s", command.cmd_type, command.vessel_name)
            match command.command_type:
                case RendererCommandType.CREATE:
                    spawn_pose = gz_pose_to_renderer_pose(command.vessel_position.to_pose())
                    self.staged.queue_create(command.vessel_name, command.renderer_obj_name, spawn_pose)
                case RendererCommandType.DELETE:
                    self.staged.queue_destroy(command.vessel_name)
                case RendererCommandType.EXPLODE:
                    self.staged.queue_explode(command.vessel_name)
                case _:
                    self._logger.error("Invalid command type %s", command.cmd_type)

    def _update_vessel_poses(self) -> None:
        ratio = self.interpolation_ratio()
        if ratio <= 0.0:
            return

        with self._batch_lock:
            current = self._current_batch
            previous = self._previous_batch
        if current is None:
            return

        previous_poses = previous.poses if previous is not None else {}
        for name, pose in current.poses.items():
            previous_pose = previous_poses.get(name)
            if previous_pose is None:
                self.staged.set_pose(name, pose)
            else:
                self.staged.set_pose(name, blend_pose(previous_pose, pose, ratio))

    def _process_vessel_commands(self) -> None:
        with self._vessel_cmds_lock:
            commands, self._vessel_cmds = self._vessel_cmds, {}

        for command in commands.values():
            try:
                values = command.actuator_values()
            except LotusimMessageError as exc:
                self._logger.warning("Skipping actuator command: %s", exc)
                continue
            for name, value in values.items():
                self.staged.set_actuator_ratio(strip_unit_suffix(name), value)

    # ------------------------------------------------------------------
    # Statistics and environment
    # ------------------------------------------------------------------

    def sim_stats(self) -> SimStats | None:
        """Latest simulation statistics, or ``None`` before the first message."""
        with self._sim_stats_lock:
            return self._sim_stats

    def publish_wind(self, x: float, y: float, z: float, *, enable: bool = True) -> bool:
        """Publish a wind command; returns ``False`` when the bus is not connected."""
        if not self._bus.is_connected:
            self._logger.warning("Bus not connected, skipping wind publish")
            return False
        message = WindCommand(linear=Vector3(x=x, y=y, z=z), enable_wind=enable)
        self._bus.publish(self._config.wind_topic, message.model_dump_json())
        self._logger.debug("Published wind linear=(%.2f,%.2f,%.2f) enable_wind=%s", x, y, z, enable)
        return True
