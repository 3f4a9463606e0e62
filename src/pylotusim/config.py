"""Bridge configuration for pylotusim."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from pylotusim._constants import (
    DEFAULT_BROKER_HOST,
    DEFAULT_BROKER_PORT,
    DEFAULT_NAMESPACE,
    DEFAULT_PORT,
    DEFAULT_WIND_TOPIC,
    EXPLOSION_ASSET,
    MAX_BLEND_RATIO,
    MIN_BLEND_RATIO,
    RPM_TO_SPIN_RATIO,
)
from pylotusim.exceptions import LotusimConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _convert(env_key: str, value: str, caster: Callable[[str], Any]) -> Any:
    try:
        return caster(value)
    except ValueError as exc:
        raise LotusimConfigError(f"Invalid value for {env_key}: {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class BridgeConfig:
    """Bridge configuration.

    Parameters
    ----------
    interface_type : str
        Transport selected at startup (``"ROS2"`` or ``"TCPIP"``).
    namespace : str
        Simulation namespace; pub/sub topics are scoped under it.
    bind_host : str
        Address the UDP/TCP transport binds to.
    port : int
        Port shared by the UDP telemetry socket and the TCP command listener.
        ``0`` picks an ephemeral port for the UDP socket and reuses its number
        for the listener.
    recv_buffer_size : int
        Maximum bytes read per datagram / stream read.
    broker_host : str
        Pub/sub broker address.
    broker_port : int
        Pub/sub broker port.
    mqtt_keepalive : int
        Broker keepalive in seconds.
    spin_ratio_scale : float
        Multiplier from thruster RPM to animator spin ratio.
    min_blend : float
        Lower clamp of the pub/sub interpolation ratio.
    max_blend : float
        Upper clamp of the pub/sub interpolation ratio.
    wind_topic : str
        Absolute topic used for wind commands.
    explosion_asset : str
        Asset identifier spawned when a vessel explodes.
    join_timeout : float
        Seconds to wait for each worker thread on shutdown.
    sync_time_scale : bool
        Drive the renderer time scale from the interpolation ratio.
    """

    interface_type: str = "ROS2"
    namespace: str = DEFAULT_NAMESPACE
    bind_host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    recv_buffer_size: int = 1024
    broker_host: str = DEFAULT_BROKER_HOST
    broker_port: int = DEFAULT_BROKER_PORT
    mqtt_keepalive: int = 60
    spin_ratio_scale: float = RPM_TO_SPIN_RATIO
    min_blend: float = MIN_BLEND_RATIO
    max_blend: float = MAX_BLEND_RATIO
    wind_topic: str = DEFAULT_WIND_TOPIC
    explosion_asset: str = EXPLOSION_ASSET
    join_timeout: float = 1.0
    sync_time_scale: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 65535:
            raise LotusimConfigError(f"port must be between 0 and 65535, got {self.port}")
        if self.recv_buffer_size <= 0:
            raise LotusimConfigError("recv_buffer_size must be positive")
        if self.min_blend > self.max_blend:
            raise LotusimConfigError(
                f"min_blend ({self.min_blend}) must not exceed max_blend ({self.max_blend})"
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> BridgeConfig:
        """Create configuration from environment variables.

        Reads optional ``LOTUSIM_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        BridgeConfig
            Populated configuration.

        Raises
        ------
        LotusimConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "LOTUSIM_INTERFACE": "interface_type",
            "LOTUSIM_NAMESPACE": "namespace",
            "LOTUSIM_BIND_HOST": "bind_host",
            "LOTUSIM_BROKER_HOST": "broker_host",
            "LOTUSIM_WIND_TOPIC": "wind_topic",
            "LOTUSIM_EXPLOSION_ASSET": "explosion_asset",
        }
        _ENV_NUMERIC_MAP: dict[str, tuple[str, Callable[[str], Any]]] = {
            "LOTUSIM_PORT": ("port", int),
            "LOTUSIM_RECV_BUFFER_SIZE": ("recv_buffer_size", int),
            "LOTUSIM_BROKER_PORT": ("broker_port", int),
            "LOTUSIM_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "LOTUSIM_SPIN_RATIO_SCALE": ("spin_ratio_scale", float),
            "LOTUSIM_MIN_BLEND": ("min_blend", float),
            "LOTUSIM_MAX_BLEND": ("max_blend", float),
            "LOTUSIM_JOIN_TIMEOUT": ("join_timeout", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, (field_name, caster) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _convert(env_key, val, caster)

        if "sync_time_scale" not in overrides:
            config_kwargs["sync_time_scale"] = _env_bool(env.get("LOTUSIM_SYNC_TIME_SCALE"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
