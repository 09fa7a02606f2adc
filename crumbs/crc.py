"""CRC-8 (polynomial 0x07, no reflection, zero init and xor-out) used by CRUMBS frames."""

from __future__ import annotations

from collections.abc import Iterable

__all__ = ["crc8_update", "crc8"]

_NIBBLE_TABLE = (
    0x00, 0x07, 0x0E, 0x09, 0x1C, 0x1B, 0x12, 0x15,
    0x38, 0x3F, 0x36, 0x31, 0x24, 0x23, 0x2A, 0x2D,
)

CRC8_INIT = 0x00


def crc8_update(crc: int, data: Iterable[int]) -> int:
    """Feed ``data`` into a running CRC-8 value and return the updated value."""
    crc &= 0xFF
    for byte in data:
        index = (crc >> 4) ^ (byte >> 4)
        crc = (_NIBBLE_TABLE[index & 0x0F] ^ (crc << 4)) & 0xFF
        index = (crc >> 4) ^ byte
        crc = (_NIBBLE_TABLE[index & 0x0F] ^ (crc << 4)) & 0xFF
    return crc


def crc8(data: bytes | bytearray | memoryview) -> int:
    """Return the CRC-8 of ``data``; an empty input gives 0."""
    if not data:
        return 0
    return crc8_update(CRC8_INIT, data)