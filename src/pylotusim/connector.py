"""Frame-driven consumer of a backend interface.

:class:`BridgeConnector` drives one interface per render frame and applies
what it staged to a :class:`Scene`. The scene (asset loading, object
instantiation, animation) is an external collaborator.

Per frame, in order: ``update()``, creations, explosions, destructions,
actuator ratios, poses. A create and a delete for the same vessel staged in
the same frame are both applied in that order.
"""

from __future__ import annotations

import logging
from typing import Protocol

from pylotusim.clock import FrameClock
from pylotusim.config import BridgeConfig
from pylotusim.exceptions import LotusimTransportError
from pylotusim.factory import InterfaceFactory, InterfaceType
from pylotusim.interfaces.base import BaseInterface
from pylotusim.interpolation import lerp_vector, slerp_quaternion
from pylotusim.models.geometry import Pose
from pylotusim.staging import CreateRequest

_logger = logging.getLogger(__name__)


class Scene(Protocol):
    """What the connector needs from the renderer."""

    def has_object(self, name: str) -> bool:
        ...

    def spawn(self, name: str, asset: str, pose: Pose) -> None:
        ...

    def destroy(self, name: str) -> None:
        ...

    def spawn_effect(self, asset: str, pose: Pose) -> None:
        ...

    def get_pose(self, name: str) -> Pose | None:
        ...

    def set_pose(self, name: str, pose: Pose) -> None:
        ...

    def set_actuator_speed(self, full_name: str, ratio: float) -> bool:
        ...


class BridgeConnector:
    """Drive an interface and mirror its staged state into a scene."""

    def __init__(
        self,
        *,
        config: BridgeConfig,
        clock: FrameClock,
        factory: InterfaceFactory,
        scene: Scene,
    ) -> None:
        self._config = config
        self._clock = clock
        self._factory = factory
        self._scene = scene
        self._interface_type = config.interface_type
        self._namespace = config.namespace
        self._interface: BaseInterface | None = None

    @property
    def interface(self) -> BaseInterface | None:
        return self._interface

    @property
    def namespace(self) -> str:
        return self._namespace

    def start(self) -> bool:
        """Create the configured interface; returns ``False`` if none could be started."""
        self._interface = self._factory.create(self._interface_type, self._namespace)
        return self._interface is not None

    def close(self) -> None:
        interface, self._interface = self._interface, None
        if interface is not None:
            interface.destroy()

    def change_namespace(self, namespace: str) -> None:
        """Restart the current interface under *namespace*."""
        _logger.info("Handling namespace change: %s", namespace)
        self._namespace = namespace
        interface = self._interface
        if interface is None:
            self.start()
            return
        interface.destroy()
        try:
            interface.start(namespace)
        except LotusimTransportError:
            _logger.error("Interface restart failed for namespace %s", namespace, exc_info=True)
            self._interface = None

    def change_interface_type(self, interface_type: str | InterfaceType) -> None:
        """Tear the current interface down and create one of *interface_type*."""
        _logger.info("Handling interface type change: %s", interface_type)
        self.close()
        self._interface_type = str(interface_type)
        self.start()

    def step(self) -> None:
        """Run one frame."""
        interface = self._interface
        if interface is None:
            return

        interface.update()
        staged = interface.staged
        self._process_creations(staged.drain_to_create())
        self._process_explosions(staged.drain_to_explode())
        self._process_destructions(staged.drain_to_destroy())
        self._process_actuators(staged.drain_actuator_ratios())
        self._process_poses(interface, staged.drain_poses())

    def _process_creations(self, requests: dict[str, CreateRequest]) -> None:
        for name, request in requests.items():
            if self._scene.has_object(name):
                continue
            self._scene.spawn(name, request.asset, request.pose)

    def _process_explosions(self, names: set[str]) -> None:
        for name in names:
            pose = self._scene.get_pose(name)
            if pose is None:
                continue
            self._scene.spawn_effect(self._config.explosion_asset, pose)
            self._scene.destroy(name)

    def _process_destructions(self, names: set[str]) -> None:
        for name in names:
            if self._scene.has_object(name):
                self._scene.destroy(name)

    def _process_actuators(self, ratios: dict[str, float]) -> None:
        for full_name, ratio in ratios.items():
            self._scene.set_actuator_speed(full_name, ratio)

    def _process_poses(self, interface: BaseInterface, poses: dict[str, Pose]) -> None:
        ratio = interface.interpolation_ratio()
        if ratio <= 0.0:
            if self._config.sync_time_scale:
                self._clock.time_scale = 0.0
            return

        if self._config.sync_time_scale:
            self._clock.time_scale = ratio
        for name, target in poses.items():
            current = self._scene.get_pose(name)
            if current is None:
                # Not instantiated yet; the next telemetry tick resupplies it.
                continue
            self._scene.set_pose(
                name,
                Pose(
                    position=lerp_vector(current.position, target.position, ratio),
                    rotation=slerp_quaternion(current.rotation, target.rotation, ratio),
                ),
            )
