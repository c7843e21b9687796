"""Core data models for outbound sensor events."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SensorEvent:
    """A single reading addressed to an MQTT topic.

    The value is already stringified; it is published as the raw payload.
    """
    topic: str
    value: str
