"""Pose blending helpers."""

from __future__ import annotations

from scipy.spatial.transform import Rotation, Slerp

from pylotusim.models.geometry import Pose, Quaternion, Vector3


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def lerp_vector(start: Vector3, end: Vector3, t: float) -> Vector3:
    """Linear interpolation with *t* clamped to ``[0, 1]``."""
    t = clamp(t, 0.0, 1.0)
    return Vector3(
        x=start.x + (end.x - start.x) * t,
        y=start.y + (end.y - start.y) * t,
        z=start.z + (end.z - start.z) * t,
    )


def slerp_quaternion(start: Quaternion, end: Quaternion, t: float) -> Quaternion:
    """Spherical interpolation along the shortest arc, *t* clamped to ``[0, 1]``.

    The result is canonical (``w >= 0``).
    """
    t = clamp(t, 0.0, 1.0)
    # scipy uses the same scalar-last [x, y, z, w] order; normalized() maps a zero quaternion to identity.
    key_rotations = Rotation.from_quat([start.normalized().as_tuple(), end.normalized().as_tuple()])
    x, y, z, w = Slerp([0.0, 1.0], key_rotations)(t).as_quat(canonical=True)
    return Quaternion(x=float(x), y=float(y), z=float(z), w=float(w))


def blend_pose(previous: Pose, current: Pose, ratio: float) -> Pose:
    """Lerp the position and slerp the rotation from *previous* toward *current*."""
    return Pose(
        position=lerp_vector(previous.position, current.position, ratio),
        rotation=slerp_quaternion(previous.rotation, current.rotation, ratio),
    )
