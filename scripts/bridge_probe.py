#!/usr/bin/env python3
"""Headless bridge probe.

Runs a :class:`pylotusim.BridgeConnector` against an in-memory scene at a
fixed frame rate and prints what the backend stages each frame. Use it to
check that a backend is reachable and that its poses, commands and
actuator values arrive as expected, without a renderer.

Configuration comes from ``LOTUSIM_*`` environment variables; command line
flags override them.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pylotusim import BridgeConfig, BridgeConnector, FrameClock, InterfaceFactory, Pose  # noqa: E402


@dataclass
class ProbeScene:
    """Scene that only records objects and prints mutations."""

    quiet_poses: bool = False
    objects: dict[str, Pose] = field(default_factory=dict)
    spawned: int = 0
    destroyed: int = 0
    effects: int = 0
    pose_updates: int = 0

    def has_object(self, name: str) -> bool:
        return name in self.objects

    def spawn(self, name: str, asset: str, pose: Pose) -> None:
        self.objects[name] = pose
        self.spawned += 1
        print(f"[probe] spawn {name} asset={asset} at {pose.position.as_tuple()}")

    def destroy(self, name: str) -> None:
        if self.objects.pop(name, None) is not None:
            self.destroyed += 1
            print(f"[probe] destroy {name}")

    def spawn_effect(self, asset: str, pose: Pose) -> None:
        self.effects += 1
        print(f"[probe] effect {asset} at {pose.position.as_tuple()}")

    def get_pose(self, name: str) -> Pose | None:
        return self.objects.get(name)

    def set_pose(self, name: str, pose: Pose) -> None:
        self.objects[name] = pose
        self.pose_updates += 1
        if not self.quiet_poses:
            print(f"[probe] pose {name} -> {pose.position.as_tuple()}")

    def set_actuator_speed(self, full_name: str, ratio: float) -> bool:
        print(f"[probe] actuator {full_name} = {ratio:.3f}")
        return True


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Headless pylotusim bridge probe.")
    parser.add_argument("--interface", help="Interface type (ROS2 or TCPIP).")
    parser.add_argument("--namespace", help="Simulation namespace.")
    parser.add_argument("--port", type=int, help="UDP/TCP port for the TCPIP interface.")
    parser.add_argument("--fps", type=float, default=30.0, help="Frames per second.")
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--spawn",
        action="append",
        default=[],
        metavar="NAME",
        help="Pre-populate the scene with a vessel so its poses are applied.",
    )
    parser.add_argument("--quiet-poses", action="store_true", help="Do not print per-frame poses.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logs.")
    return parser.parse_args()


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    if args.interface:
        overrides["interface_type"] = args.interface
    if args.namespace:
        overrides["namespace"] = args.namespace
    if args.port is not None:
        overrides["port"] = args.port
    config = BridgeConfig.from_env(**overrides)

    clock = FrameClock()
    factory = InterfaceFactory(config, clock)
    scene = ProbeScene(quiet_poses=args.quiet_poses)
    for name in args.spawn:
        scene.objects[name] = Pose()
    connector = BridgeConnector(config=config, clock=clock, factory=factory, scene=scene)

    if not connector.start():
        print(f"[probe] Could not start interface {config.interface_type!r}", file=sys.stderr)
        factory.close()
        return 2
    print(f"[probe] Running {config.interface_type} interface, namespace={config.namespace}")

    should_stop = False

    def stop_handler(_signum: int, _frame: Any) -> None:
        nonlocal should_stop
        should_stop = True

    signal.signal(signal.SIGINT, stop_handler)
    signal.signal(signal.SIGTERM, stop_handler)

    frame_period = 1.0 / args.fps if args.fps > 0 else 1.0 / 30.0
    started_at = time.monotonic()
    frames = 0
    try:
        while not should_stop:
            if args.duration > 0 and (time.monotonic() - started_at) >= args.duration:
                print(f"[probe] Reached --duration={args.duration}s, stopping.")
                break
            clock.tick()
            connector.step()
            frames += 1
            time.sleep(frame_period)
    except KeyboardInterrupt:
        pass
    finally:
        connector.close()
        factory.close()

    print("[probe] Summary")
    print(f"[probe]   frames       : {frames}")
    print(f"[probe]   spawned      : {scene.spawned}")
    print(f"[probe]   destroyed    : {scene.destroyed}")
    print(f"[probe]   effects      : {scene.effects}")
    print(f"[probe]   pose_updates : {scene.pose_updates}")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())
