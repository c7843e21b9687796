"""Sensor poller - one read/parse/publish pass over all configured devices."""

import asyncio
import functools
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Set

from floorhub.shared.models import SensorEvent

from .config import DeviceConfig, GATTConfig, TimingConfig
from .errors import ConnectionFailed, DeviceNotFound, ScanFailed, TransportFault
from .events import assemble_events
from .mqtt_publisher import MQTTPublisher
from .parser import ReadingParser
from .transport import DeviceTransport

logger = logging.getLogger(__name__)


@dataclass
class CycleStats:
    """Cycle counter and duration extremes, in seconds.

    The first cycle is counted but excluded from min/max since it includes
    the initial scan and connections.
    """
    count: int = 0
    min_duration: Optional[float] = None
    max_duration: Optional[float] = None

    def record(self, duration: float):
        if self.count > 0:
            if self.min_duration is None or duration < self.min_duration:
                self.min_duration = duration
            if self.max_duration is None or duration > self.max_duration:
                self.max_duration = duration
        self.count += 1


@dataclass
class CycleReport:
    """Outcome of one cycle, by device address."""
    duration: float = 0.0
    published: List[str] = field(default_factory=list)
    idle: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    faulted: List[str] = field(default_factory=list)


def _ms(seconds: Optional[float]) -> str:
    return "-" if seconds is None else f"{seconds * 1000:.0f}"


class SensorPoller:
    """Reads every enabled device once per cycle and publishes its events."""

    def __init__(
        self,
        transport: DeviceTransport,
        topology: Callable[[], Sequence[DeviceConfig]],
        parser: ReadingParser,
        publisher: MQTTPublisher,
        gatt: GATTConfig,
        timing: TimingConfig,
        topic_prefix: str = "sensor",
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """Initialize the poller.

        Args:
            transport: Scanned-device registry and BLE operations.
            topology: Returns the configured devices; called every cycle.
            parser: Decoder for the sensor characteristic.
            publisher: Receives each device's event batch off the event loop.
            gatt: Characteristic layout.
            timing: Cool-down after a device yields nothing.
            topic_prefix: Sensor topic prefix.
            executor: Pool publishes run on. One is created if not given.
        """
        self.transport = transport
        self.topology = topology
        self.parser = parser
        self.publisher = publisher
        self.gatt = gatt
        self.timing = timing
        self.topic_prefix = topic_prefix

        self.stats = CycleStats()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="mqtt-publish"
        )
        self._pending: Set[asyncio.Future] = set()

    async def run_cycle(self) -> CycleReport:
        """Poll all enabled devices once.

        Per-device failures are logged and do not stop the cycle.

        Returns:
            Summary of the cycle.
        """
        start = time.monotonic()
        report = CycleReport()
        logger.info("-- GATT READ SENSOR CYCLE")

        scanned = self.transport.scanned_devices
        intended = list(self.topology())

        if not scanned:
            logger.info("No scanned devices, scanning before reading")
            try:
                await self.transport.scan_devices()
            except ScanFailed as e:
                logger.error(f"{e}")
            scanned = self.transport.scanned_devices

        logger.debug(f"Scanned devices {json.dumps(sorted(scanned))}")
        logger.debug(f"Intended devices {json.dumps([d.address for d in intended])}")

        for device in intended:
            if not device.enabled:
                continue
            await self._poll_isolated(device, report)

        report.duration = time.monotonic() - start
        self.stats.record(report.duration)
        logger.info(
            f"-- End counter {self.stats.count} / {_ms(report.duration)} millis"
            f" / min {_ms(self.stats.min_duration)} / max {_ms(self.stats.max_duration)}"
        )
        return report

    async def _poll_isolated(self, device: DeviceConfig, report: CycleReport):
        """Poll one device, classifying any failure into the report."""
        try:
            events = await self.poll_device(device)
        except DeviceNotFound:
            logger.error(f"Cannot find device {device.label}")
            report.failed.append(device.address)
        except ConnectionFailed as e:
            logger.error(f"Cannot connect to device {device.label}: {e}")
            report.failed.append(device.address)
        except TransportFault as e:
            logger.error(f"Bluetooth error on device {device.label}: {e}")
            report.failed.append(device.address)
        except Exception:
            logger.exception(f"Unexpected error polling device {device.label}")
            report.faulted.append(device.address)
        else:
            if events:
                logger.info(f"Device {device.label}: publishing {len(events)} readings")
                report.published.append(device.address)
            else:
                logger.info(f"Device {device.label}: no valid readings")
                report.idle.append(device.address)
                await asyncio.sleep(self.timing.unsuccessful_task_delay)

    async def poll_device(self, device: DeviceConfig) -> List[SensorEvent]:
        """Read one device and dispatch its events.

        Args:
            device: Configured device to read.

        Returns:
            The events handed to the publisher.

        Raises:
            DeviceNotFound: Device is not in the scanned set.
            ConnectionFailed: Link could not be established.
            TransportFault: The characteristic read failed.
        """
        link = await self.transport.ensure_connection(device.address)
        raw = await self.transport.read_characteristic(link, self.gatt.sensor_characteristic)
        decoded = self.parser.parse(raw)
        logger.debug(f"Decoded {len(decoded)} values from {device.label}")

        events = assemble_events(
            decoded,
            device.cables,
            self.topic_prefix,
            self.gatt.max_sensors_per_cable,
            self.gatt.invalid_value,
        )
        if events:
            self._dispatch(device, events)
        return events

    def _dispatch(self, device: DeviceConfig, events: List[SensorEvent]):
        """Hand a batch to the publisher without waiting for it."""
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(self._executor, self.publisher.publish_events, events)
        self._pending.add(future)
        future.add_done_callback(functools.partial(self._on_dispatched, device))

    def _on_dispatched(self, device: DeviceConfig, future: asyncio.Future):
        self._pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Publishing readings of {device.label} failed: {error}")

    @property
    def pending_publishes(self) -> int:
        return len(self._pending)

    async def drain(self):
        """Wait for all dispatched publishes to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self):
        """Drain pending publishes and release the worker pool."""
        await self.drain()
        if self._owns_executor:
            self._executor.shutdown(wait=False)
