"""Floor sensor bridge - polls BLE floor sensors and publishes readings to MQTT."""

__version__ = "0.1.0"

from .bridge_service import FloorSensorBridge
from .poller import CycleStats, SensorPoller


def main():
    """Entry point for the floor sensor bridge service."""
    from .bridge_service import run_bridge
    run_bridge()


def scan():
    """Entry point for the one-shot device scan."""
    from .scan import scan_main
    scan_main()


__all__ = ["FloorSensorBridge", "SensorPoller", "CycleStats", "main", "scan"]
