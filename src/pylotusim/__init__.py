"""pylotusim - Bridge between a Lotusim simulation backend and a real-time renderer."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pylotusim")
except PackageNotFoundError:
    __version__ = "0+local"
from pylotusim.clock import FrameClock
from pylotusim.config import BridgeConfig
from pylotusim.connector import BridgeConnector, Scene
from pylotusim.coordinates import command_position_to_renderer, gz_pose_to_renderer_pose
from pylotusim.exceptions import (
    LotusimConfigError,
    LotusimError,
    LotusimMessageError,
    LotusimTransportError,
    LotusimUnknownInterfaceError,
)
from pylotusim.factory import InterfaceFactory, InterfaceType
from pylotusim.interfaces import BaseInterface, PubSubInterface, TcpIpInterface
from pylotusim.models import Pose, Quaternion, SimStats, Vector3
from pylotusim.staging import CreateRequest, StagedFrame, StagedOutputs

__all__ = [
    "__version__",
    "BaseInterface",
    "BridgeConfig",
    "BridgeConnector",
    "CreateRequest",
    "FrameClock",
    "InterfaceFactory",
    "InterfaceType",
    "LotusimConfigError",
    "LotusimError",
    "LotusimMessageError",
    "LotusimTransportError",
    "LotusimUnknownInterfaceError",
    "Pose",
    "PubSubInterface",
    "Quaternion",
    "Scene",
    "SimStats",
    "StagedFrame",
    "StagedOutputs",
    "TcpIpInterface",
    "Vector3",
    "command_position_to_renderer",
    "gz_pose_to_renderer_pose",
]
