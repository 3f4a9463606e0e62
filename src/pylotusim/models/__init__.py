"""Data models for Lotusim payloads."""

from pylotusim.models._base import LotusimBaseModel, LotusimEnum
from pylotusim.models.commands import CommandKind, StreamCommand, parse_stream_command
from pylotusim.models.geometry import Pose, Quaternion, Vector3
from pylotusim.models.messages import (
    Header,
    PoseMessage,
    RendererCommandMessage,
    RendererCommandType,
    SimStats,
    TimeStamp,
    VesselCommand,
    VesselCommandArray,
    VesselPosition,
    VesselPositionArray,
    WindCommand,
)
from pylotusim.models.telemetry import ThrusterInfo, VesselInfo, VesselInfoBatch

__all__ = [
    "CommandKind",
    "Header",
    "LotusimBaseModel",
    "LotusimEnum",
    "Pose",
    "PoseMessage",
    "Quaternion",
    "RendererCommandMessage",
    "RendererCommandType",
    "SimStats",
    "StreamCommand",
    "ThrusterInfo",
    "TimeStamp",
    "Vector3",
    "VesselCommand",
    "VesselCommandArray",
    "VesselInfo",
    "VesselInfoBatch",
    "VesselPosition",
    "VesselPositionArray",
    "WindCommand",
    "parse_stream_command",
]
