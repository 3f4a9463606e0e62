"""Command stream models (TCP transport)."""

from __future__ import annotations

import json
from enum import StrEnum

from pylotusim.exceptions import LotusimMessageError
from pylotusim.models._base import LotusimBaseModel
from pylotusim.models.geometry import Vector3


class CommandKind(StrEnum):
    CREATE = "create"
    DELETE = "delete"
    EXPLODE = "explode"


class StreamCommand(LotusimBaseModel):
    """A command received on the TCP command stream.

    ``cmd`` is kept as free text: unknown kinds are accepted on the wire
    (and acknowledged) and dropped later, when the render thread dispatches
    the queue.

    ``pose`` is the optional spawn position in backend axes. Only the
    renderer-axis :attr:`position` derived from it is used downstream.
    """

    cmd: str
    name: str
    type: str = ""
    pose: Vector3 | None = None

    @property
    def position(self) -> Vector3:
        """Spawn position in renderer axes; the origin when no pose was sent."""
        if self.pose is None:
            return Vector3()
        # Import lazily: coordinates depends on the geometry models.
        from pylotusim.coordinates import command_position_to_renderer

        return command_position_to_renderer(self.pose)

    @property
    def kind(self) -> CommandKind | None:
        try:
            return CommandKind(self.cmd)
        except ValueError:
            return None


def parse_stream_command(message: str) -> StreamCommand:
    """Parse one command-stream message.

    Raises
    ------
    LotusimMessageError
        If the message is not a JSON object carrying ``cmd`` and ``name``.
    """
    try:
        decoded = json.loads(message)
    except json.JSONDecodeError as exc:
        raise LotusimMessageError(f"Command is not JSON: {exc.msg}", source="tcp") from exc
    except (RecursionError, ValueError) as exc:
        raise LotusimMessageError(f"Command is not JSON: {type(exc).__name__}", source="tcp") from exc
    if not isinstance(decoded, dict) or "cmd" not in decoded:
        raise LotusimMessageError("Unknown JSON format", source="tcp")
    return StreamCommand.parse_payload(decoded, source="tcp")
