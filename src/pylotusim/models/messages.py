"""Pub/sub message models.

Payloads are JSON documents that mirror the Lotusim ROS2 message layouts
(``VesselPositionArray``, ``RendererCmd``, ``VesselCmdArray``,
``SimStats``, ``Wind``), field names included.
"""

from __future__ import annotations

import json
import math

from pydantic import Field

from pylotusim.exceptions import LotusimMessageError
from pylotusim.models._base import LotusimBaseModel, LotusimEnum
from pylotusim.models.geometry import Pose, Quaternion, Vector3


class TimeStamp(LotusimBaseModel):
    sec: int = 0
    nanosec: int = 0

    @property
    def seconds(self) -> float:
        return self.sec + self.nanosec * 1e-9


class Header(LotusimBaseModel):
    stamp: TimeStamp = TimeStamp()
    frame_id: str = ""


class PoseMessage(LotusimBaseModel):
    position: Vector3 = Vector3()
    orientation: Quaternion = Quaternion()

    def to_pose(self) -> Pose:
        return Pose(position=self.position, rotation=self.orientation)


class VesselPosition(LotusimBaseModel):
    vessel_name: str
    pose: PoseMessage = PoseMessage()


class VesselPositionArray(LotusimBaseModel):
    """Full pose batch published on ``<ns>/renderer_poses``."""

    header: Header = Header()
    vessels: list[VesselPosition] = Field(default_factory=list)

    @property
    def timestamp(self) -> float:
        """Backend time of the batch, in seconds."""
        return self.header.stamp.seconds


class RendererCommandType(LotusimEnum):
    """Render command tag (``RendererCmd.cmd_type``)."""

    UNKNOWN = -1
    CREATE = 0
    DELETE = 1
    EXPLODE = 2


class RendererCommandMessage(LotusimBaseModel):
    """A single render command published on ``<ns>/renderer_cmd``.

    ``cmd_type`` keeps the raw tag so unknown values can be reported as
    received; :attr:`command_type` maps it onto :class:`RendererCommandType`.
    """

    cmd_type: int
    vessel_name: str
    renderer_obj_name: str = ""
    vessel_position: PoseMessage = PoseMessage()

    @property
    def command_type(self) -> RendererCommandType:
        return RendererCommandType(self.cmd_type)


class VesselCommand(LotusimBaseModel):
    """Actuator command for one vessel; ``cmd_string`` is a JSON key→value map."""

    vessel_name: str
    cmd_string: str = "{}"

    def actuator_values(self) -> dict[str, float]:
        """Decode ``cmd_string``.

        Raises
        ------
        LotusimMessageError
            If ``cmd_string`` is not a JSON object of numbers.
        """
        try:
            decoded = json.loads(self.cmd_string)
        except json.JSONDecodeError as exc:
            raise LotusimMessageError(
                f"Vessel command for {self.vessel_name} is not JSON: {exc.msg}",
                source="pubsub",
            ) from exc
        except (RecursionError, ValueError) as exc:
            raise LotusimMessageError(
                f"Vessel command for {self.vessel_name} is not JSON: {type(exc).__name__}",
                source="pubsub",
            ) from exc
        if not isinstance(decoded, dict):
            raise LotusimMessageError(
                f"Vessel command for {self.vessel_name} is not an object",
                source="pubsub",
            )
        values: dict[str, float] = {}
        for key, value in decoded.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise LotusimMessageError(
                    f"Vessel command value for {key!r} is not numeric: {value!r}",
                    source="pubsub",
                )
            values[str(key)] = float(value)
        return values


class VesselCommandArray(LotusimBaseModel):
    """Batched actuator commands published on ``<ns>/lotusim_vessel_array_cmd``."""

    cmds: list[VesselCommand] = Field(default_factory=list)


class SimStats(LotusimBaseModel):
    """Periodic simulation statistics published on ``<ns>/sim_stats``."""

    real_time_factor: float = 0.0
    sim_time: float | None = None
    real_time: float | None = None
    iterations: int | None = None
    paused: bool | None = None

    @property
    def real_time_factor_percent(self) -> float:
        return self.real_time_factor * 100.0

    def rtf_label(self) -> str:
        """Format the real-time factor the way the overlay label shows it."""
        if not math.isfinite(self.real_time_factor):
            return "RTF: --"
        return f"RTF: {self.real_time_factor_percent:.2f}%"


class WindCommand(LotusimBaseModel):
    """Environmental wind command (outbound)."""

    linear: Vector3 = Vector3()
    enable_wind: bool = True
