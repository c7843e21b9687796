"""BLE device manager: scanned-device registry, links and characteristic reads."""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError

from .config import BLEConfig
from .errors import ConnectionFailed, DeviceNotFound, ReadTimeout, ScanFailed, TransportFault
from .transport import DeviceTransport

logger = logging.getLogger(__name__)


@dataclass
class DiscoveredDevice:
    """A discovered BLE device."""
    name: str
    address: str
    rssi: int
    device: Optional[BLEDevice] = None


class BLEManager(DeviceTransport):
    """Manages BLE scanning, device connections and characteristic reads."""

    def __init__(self, config: BLEConfig):
        """Initialize BLE manager.

        Args:
            config: BLE configuration.
        """
        self.config = config

        self._devices: Dict[str, BLEDevice] = {}
        self._clients: Dict[str, BleakClient] = {}
        self._scan_lock = asyncio.Lock()

    @property
    def scanned_devices(self) -> Dict[str, BLEDevice]:
        """Snapshot of devices found by the latest scan, keyed by address."""
        return dict(self._devices)

    async def discover(self) -> List[DiscoveredDevice]:
        """Scan for BLE devices matching the configured name pattern.

        Returns:
            List of discovered devices.

        Raises:
            ScanFailed: If the adapter reports an error.
        """
        logger.info(
            f"Scanning for devices matching '{self.config.device_pattern}' "
            f"for {self.config.scan_duration}s..."
        )

        scanner = BleakScanner()
        try:
            await scanner.start()
            await asyncio.sleep(self.config.scan_duration)
            await scanner.stop()
        except (BleakError, OSError) as e:
            raise ScanFailed(f"BLE scan failed: {e}") from e

        devices_and_ads = scanner.discovered_devices_and_advertisement_data

        discovered = []
        for address, (device, adv_data) in devices_and_ads.items():
            name = device.name or ""
            if not fnmatch.fnmatch(name, self.config.device_pattern):
                continue
            rssi = adv_data.rssi if adv_data else -100
            discovered.append(DiscoveredDevice(
                name=name,
                address=device.address,
                rssi=rssi,
                device=device,
            ))
            logger.debug(f"Found device: {name} ({device.address}) RSSI: {rssi}")

        return discovered

    async def scan_devices(self) -> None:
        """Replace the scanned device set with the result of a fresh scan."""
        async with self._scan_lock:
            discovered = await self.discover()
            devices = {d.address: d.device for d in discovered}

            # Connected peripherals usually stop advertising
            for address in self.connected_devices:
                if address not in devices and address in self._devices:
                    devices[address] = self._devices[address]

            new = set(devices) - set(self._devices)
            self._devices = devices
            logger.info(
                f"Scan complete. Found {len(discovered)} matching devices "
                f"({len(new)} new)."
            )

    def _on_disconnect(self, client: BleakClient):
        """Drop a link the peripheral closed."""
        for address, known in list(self._clients.items()):
            if known is client:
                logger.warning(f"Lost connection to {address}")
                del self._clients[address]

    async def ensure_connection(self, address: str) -> BleakClient:
        """Return a connected client for the device, connecting if needed.

        Args:
            address: Device address as configured.

        Returns:
            Connected BleakClient.

        Raises:
            DeviceNotFound: Address not in the scanned device set.
            ConnectionFailed: Connection failed or timed out.
        """
        device = self._devices.get(address)
        if device is None:
            raise DeviceNotFound(address, f"Cannot find device {address}")

        client = self._clients.get(address)
        if client is not None and client.is_connected:
            return client

        logger.info(f"Connecting to {address}...")
        client = BleakClient(
            device,
            disconnected_callback=self._on_disconnect,
            timeout=self.config.connection_timeout,
        )
        try:
            await asyncio.wait_for(client.connect(), timeout=self.config.connection_timeout)
        except asyncio.TimeoutError as e:
            raise ConnectionFailed(address, f"Timed out connecting to {address}") from e
        except (BleakError, OSError) as e:
            raise ConnectionFailed(address, f"Cannot connect to device {address}: {e}") from e

        if not client.is_connected:
            raise ConnectionFailed(address, f"Cannot connect to device {address}")

        logger.info(f"Connected to {address}")
        self._clients[address] = client
        return client

    async def read_characteristic(self, link: BleakClient, uuid: str) -> bytes:
        """Read a characteristic's raw value.

        A failed read drops the link so the next attempt reconnects.

        Args:
            link: Client returned by ensure_connection.
            uuid: Characteristic UUID.

        Returns:
            Raw characteristic bytes.

        Raises:
            ReadTimeout: The read did not complete within read_timeout.
            TransportFault: Any other BLE error.
        """
        address = link.address
        try:
            data = await asyncio.wait_for(
                link.read_gatt_char(uuid), timeout=self.config.read_timeout
            )
        except asyncio.TimeoutError as e:
            await self._drop(address)
            raise ReadTimeout(address, f"Timed out reading {uuid} from {address}") from e
        except (BleakError, OSError) as e:
            await self._drop(address)
            raise TransportFault(address, f"Error reading {uuid} from {address}: {e}") from e

        return bytes(data)

    async def _drop(self, address: str):
        client = self._clients.pop(address, None)
        if client is None:
            return
        try:
            await client.disconnect()
        except (BleakError, OSError) as e:
            logger.warning(f"Error disconnecting from {address}: {e}")

    async def disconnect_all(self) -> None:
        """Disconnect all clients."""
        for address in list(self._clients):
            await self._drop(address)
            logger.info(f"Disconnected from {address}")

    @property
    def connected_devices(self) -> List[str]:
        """Get list of currently connected device addresses."""
        return [addr for addr, client in self._clients.items() if client.is_connected]
