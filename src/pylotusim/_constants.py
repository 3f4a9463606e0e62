"""Internal constants shared across the library."""

DEFAULT_PORT = 23457
DEFAULT_NAMESPACE = "Silent_Storm"
DEFAULT_BROKER_HOST = "127.0.0.1"
DEFAULT_BROKER_PORT = 10000

# ------------------------------------------------------------------
# TCP/IP wire protocol
# ------------------------------------------------------------------

VESSEL_BATCH_MARKER = "VesselsInfo"
ACK_TOKEN = b"ACK\r\n"
FAILED_TOKEN = b"FAILED\r\n"

# Thruster RPM → animator spin ratio.
RPM_TO_SPIN_RATIO = 0.01

# ------------------------------------------------------------------
# Pub/sub topics (relative to the simulation namespace)
# ------------------------------------------------------------------

TOPIC_RENDERER_POSES = "renderer_poses"
TOPIC_RENDERER_CMD = "renderer_cmd"
TOPIC_VESSEL_ARRAY_CMD = "lotusim_vessel_array_cmd"
TOPIC_SIM_STATS = "sim_stats"
DEFAULT_WIND_TOPIC = "/aerialWorld/wind"

# Unit suffix appended by the dynamics backend to actuator keys.
RPM_UNIT_SUFFIX = "(rpm)"

# Smoothing floor/ceiling for pub/sub pose blending.
MIN_BLEND_RATIO = 0.2
MAX_BLEND_RATIO = 0.8
NEUTRAL_BLEND_RATIO = 0.5

EXPLOSION_ASSET = "explosion_area"


def namespaced_topic(namespace: str, topic: str) -> str:
    """Join *namespace* and *topic* the way the backend publishes them."""
    return f"{namespace}/{topic}"
