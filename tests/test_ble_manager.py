"""Tests for BLE scanning, connection management and reads."""

import asyncio
from types import SimpleNamespace

import pytest
from bleak.exc import BleakError

from floorhub.floor_bridge import ble_manager as ble_module
from floorhub.floor_bridge.ble_manager import BLEManager
from floorhub.floor_bridge.config import BLEConfig
from floorhub.floor_bridge.errors import (
    ConnectionFailed,
    DeviceNotFound,
    ReadTimeout,
    ScanFailed,
    TransportFault,
)

UUID = "00002a58-0000-1000-8000-00805f9b34fb"


def ble_device(address, name="FLOOR-1"):
    return SimpleNamespace(address=address, name=name)


class FakeScanner:
    results = {}
    start_error = None

    async def start(self):
        if self.start_error:
            raise self.start_error

    async def stop(self):
        pass

    @property
    def discovered_devices_and_advertisement_data(self):
        return self.results


class FakeClient:
    instances = []
    connect_error = None
    connect_delay = 0.0
    read_delay = 0.0
    read_error = None
    payload = b"\x00\x0a"

    def __init__(self, device, disconnected_callback=None, timeout=10.0):
        self.address = device.address
        self.disconnected_callback = disconnected_callback
        self.is_connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        type(self).instances.append(self)

    async def connect(self):
        self.connect_calls += 1
        await asyncio.sleep(self.connect_delay)
        if self.connect_error:
            raise self.connect_error
        self.is_connected = True

    async def disconnect(self):
        self.disconnect_calls += 1
        self.is_connected = False

    async def read_gatt_char(self, uuid):
        await asyncio.sleep(self.read_delay)
        if self.read_error:
            raise self.read_error
        return bytearray(self.payload)

    def drop(self):
        """Simulate the peripheral closing the link."""
        self.is_connected = False
        if self.disconnected_callback:
            self.disconnected_callback(self)


@pytest.fixture
def scanner(monkeypatch):
    cls = type("Scanner", (FakeScanner,), {"results": {}, "start_error": None})
    monkeypatch.setattr(ble_module, "BleakScanner", cls)
    return cls


@pytest.fixture
def client_cls(monkeypatch):
    cls = type("Client", (FakeClient,), {"instances": []})
    monkeypatch.setattr(ble_module, "BleakClient", cls)
    return cls


def make_manager(**overrides):
    config = BLEConfig(scan_duration=0.0, connection_timeout=0.2, read_timeout=0.2)
    for key, value in overrides.items():
        setattr(config, key, value)
    return BLEManager(config)


async def scanned_manager(scanner, *addresses, **overrides):
    scanner.results = {
        address: (ble_device(address), SimpleNamespace(rssi=-60)) for address in addresses
    }
    manager = make_manager(**overrides)
    await manager.scan_devices()
    return manager


async def test_scan_populates_registry(scanner):
    manager = await scanned_manager(scanner, "AA", "BB")

    assert set(manager.scanned_devices) == {"AA", "BB"}


async def test_scan_applies_name_pattern(scanner):
    scanner.results = {
        "AA": (ble_device("AA", "FLOOR-1"), SimpleNamespace(rssi=-40)),
        "BB": (ble_device("BB", "Headphones"), SimpleNamespace(rssi=-50)),
        "CC": (ble_device("CC", None), None),
    }
    manager = make_manager(device_pattern="FLOOR*")

    discovered = await manager.discover()

    assert [d.address for d in discovered] == ["AA"]
    assert discovered[0].rssi == -40


async def test_scanned_devices_is_a_snapshot(scanner):
    manager = await scanned_manager(scanner, "AA")

    snapshot = manager.scanned_devices
    snapshot.clear()

    assert "AA" in manager.scanned_devices


async def test_scan_failure_keeps_previous_registry(scanner):
    manager = await scanned_manager(scanner, "AA")
    scanner.start_error = BleakError("adapter off")

    with pytest.raises(ScanFailed):
        await manager.scan_devices()

    assert "AA" in manager.scanned_devices


async def test_unknown_address_raises_device_not_found(scanner, client_cls):
    manager = await scanned_manager(scanner, "AA")

    with pytest.raises(DeviceNotFound):
        await manager.ensure_connection("ZZ")
    assert client_cls.instances == []


async def test_ensure_connection_is_idempotent(scanner, client_cls):
    manager = await scanned_manager(scanner, "AA")

    first = await manager.ensure_connection("AA")
    second = await manager.ensure_connection("AA")

    assert first is second
    assert len(client_cls.instances) == 1
    assert first.connect_calls == 1
    assert manager.connected_devices == ["AA"]


async def test_connect_error_raises_connection_failed(scanner, client_cls):
    client_cls.connect_error = BleakError("refused")
    manager = await scanned_manager(scanner, "AA")

    with pytest.raises(ConnectionFailed):
        await manager.ensure_connection("AA")
    assert manager.connected_devices == []


async def test_connect_timeout_raises_connection_failed(scanner, client_cls):
    client_cls.connect_delay = 1.0
    manager = await scanned_manager(scanner, "AA", connection_timeout=0.01)

    with pytest.raises(ConnectionFailed):
        await manager.ensure_connection("AA")


async def test_dropped_link_is_reestablished(scanner, client_cls):
    manager = await scanned_manager(scanner, "AA")
    first = await manager.ensure_connection("AA")

    first.drop()
    second = await manager.ensure_connection("AA")

    assert second is not first
    assert len(client_cls.instances) == 2


async def test_read_returns_bytes(scanner, client_cls):
    manager = await scanned_manager(scanner, "AA")
    link = await manager.ensure_connection("AA")

    data = await manager.read_characteristic(link, UUID)

    assert data == b"\x00\x0a"
    assert isinstance(data, bytes)


async def test_read_timeout_drops_link(scanner, client_cls):
    client_cls.read_delay = 1.0
    manager = await scanned_manager(scanner, "AA", read_timeout=0.01)
    link = await manager.ensure_connection("AA")

    with pytest.raises(ReadTimeout):
        await manager.read_characteristic(link, UUID)

    assert manager.connected_devices == []
    assert link.disconnect_calls == 1


async def test_read_error_raises_transport_fault(scanner, client_cls):
    client_cls.read_error = BleakError("not permitted")
    manager = await scanned_manager(scanner, "AA")
    link = await manager.ensure_connection("AA")

    with pytest.raises(TransportFault) as excinfo:
        await manager.read_characteristic(link, UUID)

    assert excinfo.value.address == "AA"
    assert not isinstance(excinfo.value, ReadTimeout)


async def test_connected_device_survives_rescan(scanner, client_cls):
    manager = await scanned_manager(scanner, "AA", "BB")
    await manager.ensure_connection("AA")

    # AA stops advertising once connected
    scanner.results = {}
    await manager.scan_devices()

    assert list(manager.scanned_devices) == ["AA"]


async def test_disconnect_all(scanner, client_cls):
    manager = await scanned_manager(scanner, "AA", "BB")
    a = await manager.ensure_connection("AA")
    b = await manager.ensure_connection("BB")

    await manager.disconnect_all()

    assert manager.connected_devices == []
    assert a.disconnect_calls == 1
    assert b.disconnect_calls == 1
