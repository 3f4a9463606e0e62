"""Vessel telemetry datagram models (UDP transport)."""

from __future__ import annotations

from pydantic import Field

from pylotusim.models._base import LotusimBaseModel
from pylotusim.models.geometry import Pose, Quaternion, Vector3


class ThrusterInfo(LotusimBaseModel):
    """A thruster attached to a vessel, with its raw speed."""

    name: str
    rpm: float = 0.0


class VesselInfo(LotusimBaseModel):
    """One vessel record of a telemetry batch.

    Parameters
    ----------
    name : str
        Vessel name as sent by the backend (may contain ``/`` separators).
    time : float
        Backend simulation time in seconds.
    position : Vector3
        Position in backend convention.
    rotation : Quaternion
        Orientation in backend convention.
    thrusters : list[ThrusterInfo]
        Thruster samples for this tick.
    """

    name: str
    time: float = 0.0
    position: Vector3 = Vector3()
    rotation: Quaternion = Quaternion()
    thrusters: list[ThrusterInfo] = Field(default_factory=list)

    @property
    def pose(self) -> Pose:
        return Pose(position=self.position, rotation=self.rotation)


class VesselInfoBatch(LotusimBaseModel):
    """A full telemetry batch: every vessel at one backend tick."""

    vessels: list[VesselInfo] = Field(default_factory=list, alias="VesselsInfo")

    def with_dotted_names(self) -> list[VesselInfo]:
        """Return the vessels with ``/`` path separators replaced by ``.``."""
        return [
            vessel if "/" not in vessel.name else vessel.model_copy(update={"name": vessel.name.replace("/", ".")})
            for vessel in self.vessels
        ]
