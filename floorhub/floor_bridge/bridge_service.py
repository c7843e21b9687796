"""Floor sensor bridge service - main orchestrator."""

import asyncio
import logging
import signal
import sys
from typing import Optional

from floorhub.shared.logging import setup_logging

from .ble_manager import BLEManager
from .config import Config, load_config
from .errors import ScanFailed
from .mqtt_publisher import MQTTPublisher
from .parser import ReadingParser
from .poller import SensorPoller

logger = logging.getLogger(__name__)


class FloorSensorBridge:
    """Main service that polls BLE floor sensors and publishes to MQTT."""

    def __init__(self, config: Config):
        """Initialize the bridge service.

        Args:
            config: Configuration object.
        """
        self.config = config
        self.mqtt_publisher: Optional[MQTTPublisher] = None
        self.ble_manager: Optional[BLEManager] = None
        self.poller: Optional[SensorPoller] = None
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None

    def _setup_signal_handlers(self):
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            signame = signal.Signals(signum).name
            logger.info(f"Received {signame}, shutting down...")
            self.stop()

        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, signal_handler, signum)

    def stop(self):
        """Ask the poll loop to exit after the current cycle."""
        self._running = False
        if self._stop_event:
            self._stop_event.set()

    async def _sleep(self, seconds: float):
        """Sleep, waking early on stop."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _periodic_scan(self):
        """Periodically rescan so devices that appear later are picked up."""
        while self._running:
            await self._sleep(self.config.ble.scan_interval)
            if not self._running:
                break

            logger.info("Starting periodic device scan...")
            try:
                await self.ble_manager.scan_devices()
            except ScanFailed as e:
                logger.warning(f"{e}")

    async def run(self):
        """Run the bridge service (blocking)."""
        self._stop_event = asyncio.Event()
        self._setup_signal_handlers()
        self._running = True

        self.mqtt_publisher = MQTTPublisher(self.config.mqtt)
        if not self.mqtt_publisher.connect():
            logger.error("Failed to connect to MQTT broker")
            return

        self.ble_manager = BLEManager(self.config.ble)
        self.poller = SensorPoller(
            transport=self.ble_manager,
            topology=lambda: self.config.devices,
            parser=ReadingParser(self.config.gatt.value_format),
            publisher=self.mqtt_publisher,
            gatt=self.config.gatt,
            timing=self.config.timing,
            topic_prefix=self.config.sensor_topic_prefix,
        )

        scan_task = None
        if self.config.ble.scan_interval > 0:
            scan_task = asyncio.create_task(self._periodic_scan())

        enabled = sum(1 for d in self.config.devices if d.enabled)
        logger.info(
            f"Floor sensor bridge is running with {enabled} enabled devices. "
            f"Press Ctrl+C to stop."
        )
        try:
            while self._running:
                await self.poller.run_cycle()
                await self._sleep(self.config.timing.read_delay)
        finally:
            logger.info("Shutting down floor sensor bridge...")

            if scan_task:
                scan_task.cancel()
                await asyncio.gather(scan_task, return_exceptions=True)

            await self.poller.close()
            await self.ble_manager.disconnect_all()
            self.mqtt_publisher.disconnect()

            logger.info("Floor sensor bridge stopped.")


def run_bridge(config_path: Optional[str] = None):
    """Run the floor sensor bridge service.

    Args:
        config_path: Optional path to config file.
    """
    config = load_config(config_path)
    setup_logging(config.log_level)

    logger.info("Starting floor sensor bridge...")

    bridge = FloorSensorBridge(config)

    try:
        asyncio.run(bridge.run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
