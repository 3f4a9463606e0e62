"""Position, rotation and pose value types.

All three are frozen pydantic models so they can be parsed straight out of
wire payloads and shared between worker threads and the render thread.
"""

from __future__ import annotations

import math

from pylotusim.models._base import LotusimBaseModel


class Vector3(LotusimBaseModel):
    """A 3D vector."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


class Quaternion(LotusimBaseModel):
    """A rotation quaternion, scalar last (``x, y, z, w``)."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.x, self.y, self.z, self.w)

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z + self.w * self.w)

    def normalized(self) -> Quaternion:
        """Return the unit quaternion with the same orientation.

        A zero quaternion carries no orientation and normalizes to identity.
        """
        mag = self.magnitude
        if mag == 0.0 or not math.isfinite(mag):
            return Quaternion()
        if math.isclose(mag, 1.0, rel_tol=1e-9):
            return self
        return Quaternion(x=self.x / mag, y=self.y / mag, z=self.z / mag, w=self.w / mag)


class Pose(LotusimBaseModel):
    """Position + orientation of a vessel."""

    position: Vector3 = Vector3()
    rotation: Quaternion = Quaternion()
