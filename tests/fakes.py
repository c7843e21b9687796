"""Hand-written stand-ins for the BLE transport and the MQTT publisher."""

import threading
from typing import Dict, Iterable, List, Optional, Union

from floorhub.floor_bridge.config import CableConfig, DeviceConfig, SensorConfig
from floorhub.floor_bridge.errors import DeviceNotFound
from floorhub.floor_bridge.transport import DeviceTransport


def make_device(address: str, *cables: List[str], enabled: bool = True) -> DeviceConfig:
    """Device whose cables hold the given checkerboard IDs, all enabled."""
    return DeviceConfig(
        address=address,
        enabled=enabled,
        cables=tuple(
            CableConfig(sensors=tuple(SensorConfig(checkerboard_id=i) for i in ids))
            for ids in cables
        ),
    )


class FakeTransport(DeviceTransport):
    """Transport driven by canned payloads; links are plain addresses."""

    def __init__(
        self,
        devices: Iterable[str] = (),
        payloads: Optional[Dict[str, Union[bytes, Exception]]] = None,
        scan_result: Iterable[str] = (),
        connect_errors: Optional[Dict[str, Exception]] = None,
        scan_error: Optional[Exception] = None,
    ):
        self.devices = {address: object() for address in devices}
        self.payloads = payloads or {}
        self.scan_result = list(scan_result)
        self.connect_errors = connect_errors or {}
        self.scan_error = scan_error
        self.calls = []

    @property
    def scanned_devices(self):
        return dict(self.devices)

    @property
    def scan_calls(self) -> int:
        return sum(1 for call in self.calls if call[0] == "scan")

    async def scan_devices(self):
        self.calls.append(("scan",))
        if self.scan_error:
            raise self.scan_error
        for address in self.scan_result:
            self.devices[address] = object()

    async def ensure_connection(self, address):
        self.calls.append(("connect", address))
        if address not in self.devices:
            raise DeviceNotFound(address)
        if address in self.connect_errors:
            raise self.connect_errors[address]
        return address

    async def read_characteristic(self, link, uuid):
        self.calls.append(("read", link))
        payload = self.payloads[link]
        if isinstance(payload, Exception):
            raise payload
        return payload

    async def disconnect_all(self):
        self.calls.append(("disconnect_all",))


class FakePublisher:
    """Records published batches; optionally fails."""

    def __init__(self, error: Optional[Exception] = None):
        self.batches = []
        self.error = error
        self._lock = threading.Lock()

    def publish_events(self, events):
        if self.error:
            raise self.error
        with self._lock:
            self.batches.append(list(events))
        return len(events)

    @property
    def events(self):
        return [event for batch in self.batches for event in batch]
