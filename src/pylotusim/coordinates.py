"""Conversions between the backend and renderer coordinate systems.

The backend (Gazebo) is right-handed and Z-up; the renderer is left-handed
and Y-up. Two conversions coexist:

* :func:`gz_pose_to_renderer_pose` converts full poses (telemetry, spawn
  poses). It swaps Y and Z and mirrors the rotation accordingly.
* :func:`command_position_to_renderer` converts the bare spawn position of a
  command-stream ``create``. It only swaps Y and Z.

Apply each exactly once per value, at ingest.
"""

from __future__ import annotations

from pylotusim.models.geometry import Pose, Quaternion, Vector3


def gz_pose_to_renderer_pose(pose: Pose) -> Pose:
    """Convert a backend pose to a renderer pose.

    Position ``(x, y, z)`` becomes ``(x, z, y)``. The rotation is normalized
    first, then ``(x, y, z, w)`` becomes ``(-x, -z, -y, w)``. The mapping is
    its own inverse.
    """
    position = pose.position
    rotation = pose.rotation.normalized()
    return Pose(
        position=Vector3(x=position.x, y=position.z, z=position.y),
        rotation=Quaternion(x=-rotation.x, y=-rotation.z, z=-rotation.y, w=rotation.w),
    )


def command_position_to_renderer(position: Vector3) -> Vector3:
    """Convert a command-stream spawn position: ``(x, y, z)`` → ``(x, z, y)``."""
    return Vector3(x=position.x, y=position.z, z=position.y)
