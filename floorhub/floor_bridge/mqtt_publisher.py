"""MQTT publisher for floor sensor events."""

import logging
import threading
from typing import Iterable, Optional

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

from floorhub.shared.models import SensorEvent
from floorhub.shared.mqtt import MQTTConfig

logger = logging.getLogger(__name__)


class MQTTPublisher:
    """Publishes sensor events to the MQTT broker."""

    def __init__(self, config: MQTTConfig):
        """Initialize MQTT publisher.

        Args:
            config: MQTT configuration.
        """
        self.config = config
        self.client: Optional[mqtt.Client] = None
        self._connected = False
        self._connect_event = threading.Event()

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        """Handle connection to broker."""
        if reason_code == 0:
            logger.info(
                f"Connected to MQTT broker at {self.config.broker}:{self.config.port}"
            )
            self._connected = True
        else:
            logger.error(f"Failed to connect to MQTT broker: {reason_code}")
            self._connected = False
        self._connect_event.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        """Handle disconnection from broker."""
        self._connected = False
        if reason_code != 0:
            logger.warning(f"Unexpected MQTT disconnection (reason={reason_code})")
        else:
            logger.info("Disconnected from MQTT broker")

    def connect(self, timeout: float = 10.0) -> bool:
        """Connect to the MQTT broker.

        The network loop runs on paho's own thread and reconnects on its own
        after a lost connection.

        Args:
            timeout: Timeout in seconds to wait for connection.

        Returns:
            True if connected successfully, False otherwise.
        """
        self._connect_event.clear()

        self.client = mqtt.Client(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=self.config.client_id,
        )
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        logger.info(
            f"Connecting to MQTT broker at {self.config.broker}:{self.config.port}"
        )

        try:
            self.client.connect(
                self.config.broker, self.config.port, keepalive=self.config.keepalive
            )
            self.client.loop_start()

            if self._connect_event.wait(timeout=timeout):
                return self._connected
            else:
                logger.error("Timeout waiting for MQTT connection")
                return False
        except Exception as e:
            logger.error(f"Failed to connect to MQTT broker: {e}")
            return False

    def disconnect(self):
        """Disconnect from the MQTT broker."""
        if self.client:
            self.client.loop_stop()
            self.client.disconnect()
            self.client = None
            self._connected = False

    def publish_event(self, event: SensorEvent) -> bool:
        """Publish a single event.

        Args:
            event: Topic and stringified value.

        Returns:
            True if the message was queued, False if it was dropped.
        """
        if not self._connected or not self.client:
            logger.warning(f"Not connected to MQTT broker, dropping {event.topic}={event.value}")
            return False

        result = self.client.publish(event.topic, event.value, qos=self.config.qos)
        if result.rc == mqtt.MQTT_ERR_SUCCESS:
            logger.debug(f"Published to {event.topic}: {event.value}")
            return True

        logger.warning(f"Failed to publish to {event.topic}: rc={result.rc}")
        return False

    def publish_events(self, events: Iterable[SensorEvent]) -> int:
        """Publish a batch of events.

        Returns:
            Number of events queued.
        """
        return sum(1 for event in events if self.publish_event(event))

    @property
    def is_connected(self) -> bool:
        """Check if connected to MQTT broker."""
        return self._connected
