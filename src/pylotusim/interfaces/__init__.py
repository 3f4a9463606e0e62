"""Backend transports."""

from pylotusim.interfaces.base import BaseInterface
from pylotusim.interfaces.pubsub import PubSubInterface
from pylotusim.interfaces.tcpip import TcpIpInterface

__all__ = [
    "BaseInterface",
    "PubSubInterface",
    "TcpIpInterface",
]
