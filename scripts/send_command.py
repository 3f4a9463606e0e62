#!/usr/bin/env python3
"""Send test traffic to a running TCPIP interface.

Examples::

    # spawn a vessel through the command stream
    scripts/send_command.py create boat_1 --type frigate --pose 10 0 2

    # stream telemetry for it over UDP
    scripts/send_command.py telemetry boat_1 --position 10 0 2 --rpm t1=50
"""

from __future__ import annotations

import argparse
import json
import socket
import sys
import time

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 23457


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send commands/telemetry to a pylotusim TCPIP interface.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    sub = parser.add_subparsers(dest="action", required=True)

    for action in ("create", "delete", "explode"):
        cmd = sub.add_parser(action, help=f"Send a '{action}' command on the TCP stream.")
        cmd.add_argument("name")
        if action == "create":
            cmd.add_argument("--type", required=True, help="Asset identifier.")
            cmd.add_argument("--pose", type=float, nargs=3, metavar=("X", "Y", "Z"))

    raw = sub.add_parser("raw", help="Send an arbitrary line on the TCP stream.")
    raw.add_argument("text")

    telemetry = sub.add_parser("telemetry", help="Send one vessel batch datagram over UDP.")
    telemetry.add_argument("name")
    telemetry.add_argument("--time", type=float, default=None, help="Backend time (default: now).")
    telemetry.add_argument("--position", type=float, nargs=3, default=(0.0, 0.0, 0.0), metavar=("X", "Y", "Z"))
    telemetry.add_argument(
        "--rotation",
        type=float,
        nargs=4,
        default=(0.0, 0.0, 0.0, 1.0),
        metavar=("X", "Y", "Z", "W"),
    )
    telemetry.add_argument("--rpm", action="append", default=[], metavar="THRUSTER=RPM")
    return parser.parse_args()


def _send_stream(host: str, port: int, text: str) -> int:
    with socket.create_connection((host, port), timeout=5.0) as sock:
        sock.sendall(text.encode("utf-8") + b"\n")
        reply = sock.recv(64).decode("ascii", errors="replace").strip()
    print(f"[send] {text} -> {reply}")
    return 0 if reply == "ACK" else 1


def _send_telemetry(args: argparse.Namespace) -> int:
    thrusters = []
    for item in args.rpm:
        name, _, value = item.partition("=")
        thrusters.append({"name": name, "rpm": float(value or 0.0)})
    x, y, z = args.position
    qx, qy, qz, qw = args.rotation
    payload = {
        "VesselsInfo": [
            {
                "name": args.name,
                "time": args.time if args.time is not None else time.monotonic(),
                "position": {"x": x, "y": y, "z": z},
                "rotation": {"x": qx, "y": qy, "z": qz, "w": qw},
                "thrusters": thrusters,
            }
        ]
    }
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.sendto(json.dumps(payload).encode("utf-8"), (args.host, args.port))
    print(f"[send] telemetry for {args.name} sent")
    return 0


def _main() -> int:
    args = _parse_args()
    try:
        if args.action == "telemetry":
            return _send_telemetry(args)
        if args.action == "raw":
            return _send_stream(args.host, args.port, args.text)

        command: dict[str, object] = {"cmd": args.action, "name": args.name}
        if args.action == "create":
            command["type"] = args.type
            if args.pose:
                command["pose"] = dict(zip(("x", "y", "z"), args.pose, strict=True))
        return _send_stream(args.host, args.port, json.dumps(command))
    except OSError as exc:
        print(f"[send] failed: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
