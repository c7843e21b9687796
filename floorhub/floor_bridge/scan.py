"""One-shot BLE scan listing nearby devices against the configured topology."""

import asyncio
import logging
from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table

from floorhub.shared.logging import setup_logging

from .ble_manager import BLEManager, DiscoveredDevice
from .config import Config, DeviceConfig, load_config

logger = logging.getLogger(__name__)


def build_scan_table(discovered: List[DiscoveredDevice], config: Config) -> Table:
    """Tabulate discovered devices, strongest signal first.

    Configured devices that were not seen are listed at the end.
    """
    configured: Dict[str, DeviceConfig] = {d.address: d for d in config.devices}

    table = Table(title="BLE devices")
    table.add_column("Name")
    table.add_column("Address")
    table.add_column("RSSI", justify="right")
    table.add_column("Configured")

    for device in sorted(discovered, key=lambda d: d.rssi, reverse=True):
        intended = configured.pop(device.address, None)
        if intended is None:
            status = ""
        elif intended.enabled:
            status = "[green]enabled[/green]"
        else:
            status = "[yellow]disabled[/yellow]"
        table.add_row(device.name or "-", device.address, str(device.rssi), status)

    for intended in configured.values():
        table.add_row(intended.name or "-", intended.address, "-", "[red]not found[/red]")

    return table


async def _discover(config: Config) -> List[DiscoveredDevice]:
    manager = BLEManager(config.ble)
    return await manager.discover()


def scan_main(config_path: Optional[str] = None):
    """Entry point for the scan command."""
    config = load_config(config_path)
    setup_logging(config.log_level)

    console = Console()
    with console.status(f"Scanning for {config.ble.scan_duration}s..."):
        discovered = asyncio.run(_discover(config))

    console.print(build_scan_table(discovered, config))
