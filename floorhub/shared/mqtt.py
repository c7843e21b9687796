"""MQTT configuration and utilities."""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class MQTTConfig:
    """MQTT broker configuration."""
    broker: str = "localhost"
    port: int = 1883
    client_id: str = "floorhub-client"
    keepalive: int = 60
    qos: int = 1

    @classmethod
    def from_dict(cls, data: dict) -> "MQTTConfig":
        """Create config from dictionary."""
        return cls(
            broker=data.get("broker", "localhost"),
            port=data.get("port", 1883),
            client_id=data.get("client_id", "floorhub-client"),
            keepalive=data.get("keepalive", 60),
            qos=data.get("qos", 1),
        )


def sensor_topic(prefix: str, checkerboard_id: str) -> str:
    """Build the topic a sensor's readings are published to.

    Args:
        prefix: Sensor topic prefix (e.g., 'sensor').
        checkerboard_id: Logical sensor position identifier.

    Returns:
        Topic string of the form '<prefix>/<checkerboard_id>'.
    """
    return f"{prefix.rstrip('/')}/{checkerboard_id}"
