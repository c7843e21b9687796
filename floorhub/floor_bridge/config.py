"""Configuration loading for the floor sensor bridge."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from floorhub.shared.config import get_config_path, load_yaml_config
from floorhub.shared.mqtt import MQTTConfig

DEFAULT_CONFIG_NAME = "floor-bridge.yaml"


@dataclass
class BLEConfig:
    """BLE scanning and connection configuration."""
    scan_duration: float = 10.0
    scan_interval: float = 300.0  # 0 disables periodic rescans
    connection_timeout: float = 20.0
    read_timeout: float = 10.0
    device_pattern: str = "*"

    @classmethod
    def from_dict(cls, data: dict) -> "BLEConfig":
        return cls(
            scan_duration=data.get("scan_duration", 10.0),
            scan_interval=data.get("scan_interval", 300.0),
            connection_timeout=data.get("connection_timeout", 20.0),
            read_timeout=data.get("read_timeout", 10.0),
            device_pattern=data.get("device_pattern", "*"),
        )


@dataclass
class GATTConfig:
    """Layout of the sensor characteristic."""
    sensor_characteristic: str = "00002a58-0000-1000-8000-00805f9b34fb"
    value_format: str = "B"
    invalid_value: int = 255
    max_sensors_per_cable: int = 8

    @classmethod
    def from_dict(cls, data: dict) -> "GATTConfig":
        return cls(
            sensor_characteristic=data.get(
                "sensor_characteristic", "00002a58-0000-1000-8000-00805f9b34fb"
            ),
            value_format=data.get("value_format", "B"),
            invalid_value=data.get("invalid_value", 255),
            max_sensors_per_cable=data.get("max_sensors_per_cable", 8),
        )


@dataclass
class TimingConfig:
    """Polling cadence, in seconds."""
    read_delay: float = 1.0
    unsuccessful_task_delay: float = 0.5

    @classmethod
    def from_dict(cls, data: dict) -> "TimingConfig":
        return cls(
            read_delay=data.get("read_delay", 1.0),
            unsuccessful_task_delay=data.get("unsuccessful_task_delay", 0.5),
        )


@dataclass(frozen=True)
class SensorConfig:
    """A single sensor position on a cable."""
    checkerboard_id: str
    enabled: bool = True


@dataclass(frozen=True)
class CableConfig:
    """A wiring group of sensors attached to one device."""
    sensors: Tuple[SensorConfig, ...] = ()
    enabled: bool = True


@dataclass(frozen=True)
class DeviceConfig:
    """A BLE device the bridge is expected to read."""
    address: str
    cables: Tuple[CableConfig, ...] = ()
    enabled: bool = True
    name: str = ""

    @property
    def label(self) -> str:
        """Name for log messages."""
        return f"{self.name} ({self.address})" if self.name else self.address


@dataclass
class Config:
    """Main configuration."""
    mqtt: MQTTConfig
    ble: BLEConfig = field(default_factory=BLEConfig)
    gatt: GATTConfig = field(default_factory=GATTConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    sensor_topic_prefix: str = "sensor"
    devices: List[DeviceConfig] = field(default_factory=list)
    log_level: str = "INFO"


def parse_devices(raw_devices: list) -> List[DeviceConfig]:
    """Parse the device/cable/sensor tree.

    Args:
        raw_devices: The 'devices' list from the YAML file.

    Returns:
        List of DeviceConfig in file order.

    Raises:
        ValueError: If an entry is malformed or a checkerboard ID repeats.
    """
    devices = []
    seen_ids = set()

    for device_data in raw_devices or []:
        if not isinstance(device_data, dict) or "address" not in device_data:
            raise ValueError(f"Device entry must be a dict with an 'address': {device_data!r}")

        cables = []
        for cable_data in device_data.get("cables", []) or []:
            sensors = []
            for sensor_data in cable_data.get("sensors", []) or []:
                # Allow the short form '- A1' for an enabled sensor
                if not isinstance(sensor_data, dict):
                    sensor_data = {"checkerboard_id": sensor_data}
                checkerboard_id = str(sensor_data["checkerboard_id"])
                if checkerboard_id in seen_ids:
                    raise ValueError(f"Duplicate checkerboard_id '{checkerboard_id}'")
                seen_ids.add(checkerboard_id)
                sensors.append(SensorConfig(
                    checkerboard_id=checkerboard_id,
                    enabled=sensor_data.get("enabled", True),
                ))
            cables.append(CableConfig(
                sensors=tuple(sensors),
                enabled=cable_data.get("enabled", True),
            ))

        devices.append(DeviceConfig(
            address=str(device_data["address"]),
            cables=tuple(cables),
            enabled=device_data.get("enabled", True),
            name=device_data.get("name", ""),
        ))

    return devices


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file and environment variables.

    Args:
        config_path: Path to config file. If None, uses FLOOR_BRIDGE_CONFIG,
            then config/floor-bridge.yaml at the repo root.

    Returns:
        Config object with loaded settings.
    """
    if config_path is None:
        config_path = os.environ.get("FLOOR_BRIDGE_CONFIG")

    if config_path is None:
        path = get_config_path(DEFAULT_CONFIG_NAME)
    else:
        path = Path(config_path)

    data = load_yaml_config(path)

    config = Config(
        mqtt=MQTTConfig.from_dict(data.get("mqtt", {})),
        ble=BLEConfig.from_dict(data.get("ble", {})),
        gatt=GATTConfig.from_dict(data.get("gatt", {})),
        timing=TimingConfig.from_dict(data.get("timing", {})),
        sensor_topic_prefix=data.get("topics", {}).get("sensor", "sensor"),
        devices=parse_devices(data.get("devices", [])),
        log_level=data.get("log_level", "INFO"),
    )

    # Environment variable overrides
    if mqtt_broker := os.environ.get("MQTT_BROKER"):
        config.mqtt.broker = mqtt_broker
    if log_level := os.environ.get("LOG_LEVEL"):
        config.log_level = log_level

    return config
