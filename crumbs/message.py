"""CRUMBS message model and frame encoding/decoding.

Wire format: ``[type_id, opcode, data_len, data..., crc8]`` where the CRC covers
the header and payload bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from crumbs.crc import crc8

__all__ = [
    "MESSAGE_MAX_SIZE",
    "MAX_PAYLOAD",
    "HEADER_LEN",
    "MIN_FRAME_LEN",
    "CMD_SET_REPLY",
    "Message",
    "CrcStats",
    "FrameError",
    "CrcMismatchError",
    "encode_message",
    "decode_message",
]

MESSAGE_MAX_SIZE = 31
MAX_PAYLOAD = 27
HEADER_LEN = 3
MIN_FRAME_LEN = 4
CMD_SET_REPLY = 0xFE


class FrameError(ValueError):
    """A frame or message could not be encoded or decoded."""


class CrcMismatchError(FrameError):
    """The CRC byte of a frame does not match its contents."""

    def __init__(self, received: int, computed: int) -> None:
        super().__init__(
            f"CRC mismatch (got 0x{received:02X}, expected 0x{computed:02X})"
        )
        self.received = received
        self.computed = computed


@dataclass
class Message:
    """A single CRUMBS message."""

    type_id: int = 0
    opcode: int = 0
    data: bytes = b""
    crc8: int = 0

    def __post_init__(self) -> None:
        self.data = bytes(self.data)


@dataclass
class CrcStats:
    """CRC bookkeeping for decoded frames."""

    error_count: int = 0
    last_crc_ok: bool = False

    def record_ok(self) -> None:
        """Note a frame that decoded with a valid CRC."""
        self.last_crc_ok = True

    def record_failure(self, crc_mismatch: bool) -> None:
        """Note a failed decode; only CRC mismatches count as errors."""
        self.last_crc_ok = False
        if crc_mismatch:
            self.error_count += 1

    def reset(self) -> None:
        """Clear the error count and mark the last CRC as good."""
        self.error_count = 0
        self.last_crc_ok = True


def _check_byte(name: str, value: int) -> None:
    if not 0 <= value <= 0xFF:
        raise FrameError(f"{name} {value} does not fit in a byte")


def encode_message(msg: Message) -> bytes:
    """Serialize ``msg`` into a wire frame of ``4 + len(msg.data)`` bytes."""
    if len(msg.data) > MAX_PAYLOAD:
        raise FrameError(
            f"payload of {len(msg.data)} bytes exceeds maximum {MAX_PAYLOAD}"
        )
    _check_byte("type_id", msg.type_id)
    _check_byte("opcode", msg.opcode)
    body = bytes((msg.type_id, msg.opcode, len(msg.data))) + msg.data
    return body + bytes((crc8(body),))


def decode_message(
    frame: bytes | bytearray | memoryview, stats: Optional[CrcStats] = None
) -> Message:
    """Decode a wire frame into a :class:`Message`, updating ``stats`` if given.

    Bytes after the CRC are ignored.
    """
    frame = bytes(frame)
    try:
        if len(frame) < MIN_FRAME_LEN:
            raise FrameError(f"frame too short ({len(frame)} < {MIN_FRAME_LEN})")
        data_len = frame[2]
        if data_len > MAX_PAYLOAD:
            raise FrameError(f"data_len {data_len} exceeds maximum {MAX_PAYLOAD}")
        expected_len = HEADER_LEN + data_len + 1
        if len(frame) < expected_len:
            raise FrameError(f"frame truncated ({len(frame)} < {expected_len})")
        crc_span = HEADER_LEN + data_len
        computed = crc8(frame[:crc_span])
        received = frame[crc_span]
        if computed != received:
            raise CrcMismatchError(received, computed)
    except CrcMismatchError:
        if stats is not None:
            stats.record_failure(crc_mismatch=True)
        raise
    except FrameError:
        if stats is not None:
            stats.record_failure(crc_mismatch=False)
        raise

    if stats is not None:
        stats.record_ok()
    return Message(
        type_id=frame[0],
        opcode=frame[1],
        data=frame[HEADER_LEN:crc_span],
        crc8=received,
    )