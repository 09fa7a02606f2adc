"""Controller-side commands for the 4-LED array peripheral (type ID 0x01).

SET operations change LED states and blink patterns. GET operations are served
through SET_REPLY: the controller selects the opcode, then reads the reply.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from crumbs.device import Device
from crumbs.message import CMD_SET_REPLY, FrameError, Message

__all__ = [
    "LED_TYPE_ID",
    "LED_MODULE_VERSION",
    "LED_COUNT",
    "OP_SET_ALL",
    "OP_SET_ONE",
    "OP_BLINK",
    "OP_GET_STATE",
    "OP_GET_BLINK",
    "BlinkConfig",
    "ReplyMismatchError",
    "send_set_all",
    "send_set_one",
    "send_blink",
    "query_state",
    "query_blink",
    "get_state",
    "get_blink",
]

LED_TYPE_ID = 0x01
LED_MODULE_VERSION = (1, 0, 0)
LED_COUNT = 4

OP_SET_ALL = 0x01
OP_SET_ONE = 0x02
OP_BLINK = 0x03
OP_GET_STATE = 0x80
OP_GET_BLINK = 0x81

_BLINK_ENTRY = struct.Struct("<BH")


class ReplyMismatchError(FrameError):
    """A reply arrived with an unexpected type ID or opcode."""

    def __init__(self, type_id: int, opcode: int, expected_opcode: int) -> None:
        super().__init__(
            f"unexpected reply type=0x{type_id:02X} opcode=0x{opcode:02X} "
            f"(expected type=0x{LED_TYPE_ID:02X} opcode=0x{expected_opcode:02X})"
        )
        self.type_id = type_id
        self.opcode = opcode
        self.expected_opcode = expected_opcode


@dataclass(frozen=True)
class BlinkConfig:
    """Blink configuration of all four LEDs, indexed 0-3."""

    enable: tuple[int, ...]
    period_ms: tuple[int, ...]


def _u8(name: str, value: int) -> bytes:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} {value} does not fit in a byte")
    return bytes((value,))


def _u16(name: str, value: int) -> bytes:
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"{name} {value} does not fit in 16 bits")
    return value.to_bytes(2, "little")


def _send(dev: Device, msg: Message) -> None:
    if dev.ctx is None or dev.write_fn is None:
        raise ValueError("device needs a context and a write function to send")
    dev.ctx.controller_send(dev.addr, msg, dev.write_fn)


def send_set_all(dev: Device, mask: int) -> None:
    """Set all LEDs at once; bits 0-3 of ``mask`` switch LEDs 0-3 on."""
    _send(dev, Message(LED_TYPE_ID, OP_SET_ALL, _u8("mask", mask)))


def send_set_one(dev: Device, led_idx: int, state: int) -> None:
    """Set one LED on (1) or off (0)."""
    payload = _u8("led_idx", led_idx) + _u8("state", state)
    _send(dev, Message(LED_TYPE_ID, OP_SET_ONE, payload))


def send_blink(dev: Device, led_idx: int, enable: int, period_ms: int) -> None:
    """Enable or disable blinking of one LED with the given full-cycle period."""
    payload = (
        _u8("led_idx", led_idx)
        + _u8("enable", enable)
        + _u16("period_ms", period_ms)
    )
    _send(dev, Message(LED_TYPE_ID, OP_BLINK, payload))


def query_state(dev: Device) -> None:
    """Ask the peripheral to serve LED states on the next read."""
    _send(dev, Message(0, CMD_SET_REPLY, bytes((OP_GET_STATE,))))


def query_blink(dev: Device) -> None:
    """Ask the peripheral to serve the blink configuration on the next read."""
    _send(dev, Message(0, CMD_SET_REPLY, bytes((OP_GET_BLINK,))))


def _read_reply(dev: Device, opcode: int, delay_us: int) -> Message:
    if dev.ctx is None or dev.read_fn is None:
        raise ValueError("device needs a context and a read function to read")
    if dev.delay_fn is not None:
        dev.delay_fn(delay_us)
    reply = dev.ctx.controller_read(dev.addr, dev.read_fn)
    if reply.type_id != LED_TYPE_ID or reply.opcode != opcode:
        raise ReplyMismatchError(reply.type_id, reply.opcode, opcode)
    return reply


def get_state(dev: Device, delay_us: int = 0) -> int:
    """Query and read the LED state mask (bits 0-3 = LEDs 0-3)."""
    query_state(dev)
    reply = _read_reply(dev, OP_GET_STATE, delay_us)
    if not reply.data:
        raise FrameError("LED state reply has no payload")
    return reply.data[0]


def get_blink(dev: Device, delay_us: int = 0) -> BlinkConfig:
    """Query and read the blink configuration of all four LEDs."""
    query_blink(dev)
    reply = _read_reply(dev, OP_GET_BLINK, delay_us)
    needed = _BLINK_ENTRY.size * LED_COUNT
    if len(reply.data) < needed:
        raise FrameError(
            f"blink reply payload of {len(reply.data)} bytes is shorter than {needed}"
        )
    entries = list(_BLINK_ENTRY.iter_unpack(reply.data[:needed]))
    return BlinkConfig(
        enable=tuple(enable for enable, _ in entries),
        period_ms=tuple(period for _, period in entries),
    )