"""Base class for device transports consumed by the poller."""

from abc import ABC, abstractmethod
from typing import Any, Dict


class DeviceTransport(ABC):
    """Scan, connect and read operations for a set of devices."""

    @property
    @abstractmethod
    def scanned_devices(self) -> Dict[str, Any]:
        """Devices found by the latest scan, keyed by address."""
        pass

    @abstractmethod
    async def scan_devices(self) -> None:
        """Refresh the scanned device set."""
        pass

    @abstractmethod
    async def ensure_connection(self, address: str) -> Any:
        """Return an active link to the device, connecting if needed.

        Raises:
            DeviceNotFound: Address not in the scanned device set.
            ConnectionFailed: The link could not be established.
        """
        pass

    @abstractmethod
    async def read_characteristic(self, link: Any, uuid: str) -> bytes:
        """Read a characteristic over an active link.

        Raises:
            ReadTimeout: The read did not complete in time.
            TransportFault: Any other transport failure.
        """
        pass

    @abstractmethod
    async def disconnect_all(self) -> None:
        """Close every open link."""
        pass
