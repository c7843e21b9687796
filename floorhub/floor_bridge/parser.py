"""Decoder for the raw sensor characteristic."""

import logging
import struct
from typing import List, Union

logger = logging.getLogger(__name__)


class ReadingParser:
    """Unpacks a characteristic buffer into one number per sensor slot.

    Slot 0 is the device's header/status slot; sensor values follow in
    cable-major order.
    """

    def __init__(self, value_format: str = "B"):
        """Initialize parser.

        Args:
            value_format: struct format code of one value (e.g., 'B', 'H', 'h').
        """
        if len(value_format) != 1:
            raise ValueError(f"value_format must be a single struct code, got '{value_format}'")
        self.value_format = value_format
        self.value_size = struct.calcsize(f"<{value_format}")

    def parse(self, data: bytes) -> List[Union[int, float]]:
        """Parse a raw buffer.

        Trailing bytes that do not form a whole value are ignored.

        Args:
            data: Raw bytes read from the characteristic.

        Returns:
            Decoded values in slot order.
        """
        count = len(data) // self.value_size
        if count * self.value_size != len(data):
            logger.debug(
                f"Ignoring {len(data) - count * self.value_size} trailing bytes"
            )
        if count == 0:
            return []
        return list(struct.unpack_from(f"<{count}{self.value_format}", data))
