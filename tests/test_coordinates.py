from __future__ import annotations

import math

import pytest

from pylotusim.coordinates import command_position_to_renderer, gz_pose_to_renderer_pose
from pylotusim.models import Pose, Quaternion, Vector3


def _approx_tuple(values: tuple[float, ...]) -> object:
    return pytest.approx(values, abs=1e-9)


def test_position_swaps_y_and_z() -> None:
    pose = Pose(position=Vector3(x=1.0, y=2.0, z=3.0))

    converted = gz_pose_to_renderer_pose(pose)

    assert converted.position.as_tuple() == (1.0, 3.0, 2.0)


def test_identity_rotation_stays_identity() -> None:
    converted = gz_pose_to_renderer_pose(Pose())

    assert converted.rotation.as_tuple() == _approx_tuple((0.0, 0.0, 0.0, 1.0))


def test_rotation_is_mirrored() -> None:
    half = math.sqrt(0.5)
    # 90 degrees about the backend's vertical axis (Z).
    pose = Pose(rotation=Quaternion(x=0.0, y=0.0, z=half, w=half))

    converted = gz_pose_to_renderer_pose(pose)

    # Becomes a rotation about the renderer's vertical axis (Y), handedness flipped.
    assert converted.rotation.as_tuple() == _approx_tuple((0.0, -half, 0.0, half))


def test_rotation_is_normalized_before_mapping() -> None:
    pose = Pose(rotation=Quaternion(x=0.0, y=0.0, z=2.0, w=2.0))

    converted = gz_pose_to_renderer_pose(pose)

    assert converted.rotation.magnitude == pytest.approx(1.0)


def test_zero_quaternion_maps_to_identity() -> None:
    pose = Pose(rotation=Quaternion(x=0.0, y=0.0, z=0.0, w=0.0))

    converted = gz_pose_to_renderer_pose(pose)

    assert converted.rotation.as_tuple() == _approx_tuple((0.0, 0.0, 0.0, 1.0))


@pytest.mark.parametrize(
    ("position", "rotation"),
    [
        ((1.0, 2.0, 3.0), (0.0, 0.0, 0.0, 1.0)),
        ((-4.5, 0.25, 10.0), (0.1825742, 0.3651484, 0.5477226, 0.7302967)),
        ((0.0, -7.0, 0.0), (0.5, -0.5, 0.5, -0.5)),
    ],
)
def test_conversion_is_its_own_inverse(
    position: tuple[float, float, float],
    rotation: tuple[float, float, float, float],
) -> None:
    pose = Pose(
        position=Vector3(x=position[0], y=position[1], z=position[2]),
        rotation=Quaternion(x=rotation[0], y=rotation[1], z=rotation[2], w=rotation[3]),
    )

    twice = gz_pose_to_renderer_pose(gz_pose_to_renderer_pose(pose))

    assert twice.position.as_tuple() == _approx_tuple(position)
    assert twice.rotation.as_tuple() == pytest.approx(pose.rotation.normalized().as_tuple(), abs=1e-6)


def test_command_position_only_swaps_axes() -> None:
    converted = command_position_to_renderer(Vector3(x=10.0, y=-2.0, z=5.0))

    assert converted.as_tuple() == (10.0, 5.0, -2.0)
