"""floorhub - BLE floor sensor services."""

__version__ = "0.1.0"
