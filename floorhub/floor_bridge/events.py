"""Map decoded values onto per-sensor MQTT events."""

from typing import List, Sequence, Union

from floorhub.shared.models import SensorEvent
from floorhub.shared.mqtt import sensor_topic

from .config import CableConfig

Number = Union[int, float]


def slot_index(cable_index: int, sensor_index: int, max_sensors_per_cable: int) -> int:
    """Position of a sensor's value in the decoded sequence (slot 0 is the header)."""
    return cable_index * max_sensors_per_cable + sensor_index + 1


def assemble_events(
    decoded: Sequence[Number],
    cables: Sequence[CableConfig],
    topic_prefix: str,
    max_sensors_per_cable: int,
    invalid_value: Number,
) -> List[SensorEvent]:
    """Build the events for one device's decoded reading.

    Disabled cables and sensors are skipped, as are slots that are missing
    from the decoded sequence or hold the invalid value.

    Args:
        decoded: Values returned by the parser.
        cables: The device's cable topology.
        topic_prefix: Sensor topic prefix.
        max_sensors_per_cable: Slots reserved per cable in the decoded sequence.
        invalid_value: Sentinel meaning "no reading".

    Returns:
        Events in topology order.
    """
    events = []
    for cable_index, cable in enumerate(cables):
        if not cable.enabled:
            continue
        for sensor_index, sensor in enumerate(cable.sensors):
            if not sensor.enabled:
                continue
            index = slot_index(cable_index, sensor_index, max_sensors_per_cable)
            value = decoded[index] if index < len(decoded) else invalid_value
            if value == invalid_value:
                continue
            events.append(SensorEvent(
                topic=sensor_topic(topic_prefix, sensor.checkerboard_id),
                value=str(value),
            ))
    return events
