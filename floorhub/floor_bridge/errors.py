"""Exceptions raised by the BLE transport and caught per device by the poller."""


class DeviceError(Exception):
    """Base class for recoverable per-device failures."""

    def __init__(self, address: str, message: str = ""):
        self.address = address
        super().__init__(message or address)


class DeviceNotFound(DeviceError):
    """Intended device is absent from the latest scan results."""
    pass


class ConnectionFailed(DeviceError):
    """The BLE link could not be established."""
    pass


class TransportFault(DeviceError):
    """Any other BLE transport failure."""
    pass


class ReadTimeout(TransportFault):
    """Reading the characteristic did not complete in time."""
    pass


class ScanFailed(Exception):
    """The BLE adapter could not complete a scan."""
    pass
