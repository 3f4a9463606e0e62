"""Staged outputs: the handoff between a transport and the render thread.

A transport writes into its :class:`StagedOutputs`; the consumer drains all
five fields once per frame. Every field has its own lock. Producers hold a
lock only for one assignment and drains hold it only to swap the field out,
so no lock is ever held across two fields or across scene mutation.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from pylotusim.models.geometry import Pose

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateRequest:
    """Pending vessel creation: which asset to spawn and where (renderer axes)."""

    asset: str
    pose: Pose


@dataclass(frozen=True)
class StagedFrame:
    """Everything a transport staged since the previous drain."""

    poses: dict[str, Pose] = field(default_factory=dict)
    to_create: dict[str, CreateRequest] = field(default_factory=dict)
    to_destroy: set[str] = field(default_factory=set)
    to_explode: set[str] = field(default_factory=set)
    actuator_ratios: dict[str, float] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.poses or self.to_create or self.to_destroy or self.to_explode or self.actuator_ratios)


class StagedOutputs:
    """Guarded staged fields owned by one transport instance."""

    def __init__(self) -> None:
        self._poses: dict[str, Pose] = {}
        self._poses_lock = threading.Lock()
        self._to_create: dict[str, CreateRequest] = {}
        self._to_create_lock = threading.Lock()
        self._to_destroy: set[str] = set()
        self._to_destroy_lock = threading.Lock()
        self._to_explode: set[str] = set()
        self._to_explode_lock = threading.Lock()
        self._actuator_ratios: dict[str, float] = {}
        self._actuator_ratios_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def set_pose(self, name: str, pose: Pose) -> None:
        with self._poses_lock:
            self._poses[name] = pose

    def queue_create(self, name: str, asset: str, pose: Pose) -> bool:
        """Queue a creation; returns ``False`` when *name* is already pending."""
        with self._to_create_lock:
            if name in self._to_create:
                queued = False
            else:
                self._to_create[name] = CreateRequest(asset=asset, pose=pose)
                queued = True
        if not queued:
            _logger.debug("Creation of %s already pending, ignoring duplicate", name)
        return queued

    def queue_destroy(self, name: str) -> None:
        with self._to_destroy_lock:
            self._to_destroy.add(name)

    def queue_explode(self, name: str) -> None:
        with self._to_explode_lock:
            self._to_explode.add(name)

    def set_actuator_ratio(self, full_name: str, ratio: float) -> None:
        with self._actuator_ratios_lock:
            self._actuator_ratios[full_name] = ratio

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def drain_poses(self) -> dict[str, Pose]:
        with self._poses_lock:
            drained, self._poses = self._poses, {}
        return drained

    def drain_to_create(self) -> dict[str, CreateRequest]:
        with self._to_create_lock:
            drained, self._to_create = self._to_create, {}
        return drained

    def drain_to_destroy(self) -> set[str]:
        with self._to_destroy_lock:
            drained, self._to_destroy = self._to_destroy, set()
        return drained

    def drain_to_explode(self) -> set[str]:
        with self._to_explode_lock:
            drained, self._to_explode = self._to_explode, set()
        return drained

    def drain_actuator_ratios(self) -> dict[str, float]:
        with self._actuator_ratios_lock:
            drained, self._actuator_ratios = self._actuator_ratios, {}
        return drained

    def drain(self) -> StagedFrame:
        """Drain all five fields, one lock at a time."""
        return StagedFrame(
            poses=self.drain_poses(),
            to_create=self.drain_to_create(),
            to_destroy=self.drain_to_destroy(),
            to_explode=self.drain_to_explode(),
            actuator_ratios=self.drain_actuator_ratios(),
        )
