"""Shared utilities for floorhub services."""

from .models import SensorEvent
from .config import load_yaml_config, get_config_path
from .mqtt import MQTTConfig, sensor_topic
from .logging import setup_logging

__all__ = [
    "SensorEvent",
    "load_yaml_config",
    "get_config_path",
    "MQTTConfig",
    "sensor_topic",
    "setup_logging",
]
