"""CRUMBS endpoint context: role, callbacks, handler tables and CRC statistics."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Optional

from crumbs.message import (
    CMD_SET_REPLY,
    MESSAGE_MAX_SIZE,
    MIN_FRAME_LEN,
    CrcStats,
    FrameError,
    Message,
    decode_message,
    encode_message,
)

__all__ = [
    "DEFAULT_MAX_HANDLERS",
    "Role",
    "RoleError",
    "HandlerTableFull",
    "Context",
    "MessageCallback",
    "RequestCallback",
    "HandlerFn",
    "ReplyFn",
    "WriteFn",
    "ReadFn",
]

DEFAULT_MAX_HANDLERS = 16

MessageCallback = Callable[["Context", Message], None]
RequestCallback = Callable[["Context", Message], None]
HandlerFn = Callable[["Context", int, bytes, Any], None]
ReplyFn = Callable[["Context", Message, Any], None]
WriteFn = Callable[[int, bytes], None]
ReadFn = Callable[[int, int, int], bytes]


class Role(enum.Enum):
    """Which side of the bus a context acts for."""

    CONTROLLER = 0
    PERIPHERAL = 1


class RoleError(RuntimeError):
    """An operation was attempted on a context with the wrong role."""


class HandlerTableFull(RuntimeError):
    """No free slot is left in a handler table."""


@dataclass
class _Slot:
    fn: Callable[..., None]
    user_data: Any


def _check_opcode(opcode: int) -> None:
    if not 0 <= opcode <= 0xFF:
        raise ValueError(f"opcode {opcode} does not fit in a byte")


class Context:
    """State for one CRUMBS controller or peripheral."""

    def __init__(
        self,
        role: Role,
        address: int = 0,
        max_handlers: int = DEFAULT_MAX_HANDLERS,
    ) -> None:
        if max_handlers < 0:
            raise ValueError("max_handlers must not be negative")
        self.role = role
        self.address = address if role is Role.PERIPHERAL else 0
        self.max_handlers = max_handlers
        self.crc_stats = CrcStats()
        self.on_message: Optional[MessageCallback] = None
        self.on_request: Optional[RequestCallback] = None
        self.user_data: Any = None
        self.requested_opcode = 0
        self._handlers: dict[int, _Slot] = {}
        self._reply_handlers: dict[int, _Slot] = {}

    # ---- configuration -------------------------------------------------

    def set_callbacks(
        self,
        on_message: Optional[MessageCallback] = None,
        on_request: Optional[RequestCallback] = None,
        user_data: Any = None,
    ) -> None:
        """Install the general message/request callbacks and user data."""
        self.on_message = on_message
        self.on_request = on_request
        self.user_data = user_data

    def _register(
        self,
        table: dict[int, _Slot],
        opcode: int,
        fn: Optional[Callable[..., None]],
        user_data: Any,
    ) -> None:
        _check_opcode(opcode)
        if fn is None:
            table.pop(opcode, None)
            return
        if opcode in table:
            table[opcode] = _Slot(fn, user_data)
            return
        if len(table) >= self.max_handlers:
            raise HandlerTableFull(
                f"handler table full ({self.max_handlers} slots)"
            )
        table[opcode] = _Slot(fn, user_data)

    def register_handler(
        self, opcode: int, fn: Optional[HandlerFn], user_data: Any = None
    ) -> None:
        """Register, replace or (with ``fn=None``) remove a command handler."""
        self._register(self._handlers, opcode, fn, user_data)

    def unregister_handler(self, opcode: int) -> None:
        """Remove the command handler for ``opcode`` if there is one."""
        self._register(self._handlers, opcode, None, None)

    def register_reply_handler(
        self, opcode: int, fn: Optional[ReplyFn], user_data: Any = None
    ) -> None:
        """Register, replace or (with ``fn=None``) remove a reply handler."""
        self._register(self._reply_handlers, opcode, fn, user_data)

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    @property
    def reply_handler_count(self) -> int:
        return len(self._reply_handlers)

    # ---- CRC statistics ------------------------------------------------

    @property
    def crc_error_count(self) -> int:
        return self.crc_stats.error_count

    @property
    def last_crc_ok(self) -> bool:
        return self.crc_stats.last_crc_ok

    def reset_crc_stats(self) -> None:
        """Clear the CRC error count and mark the last CRC as good."""
        self.crc_stats.reset()

    def decode(self, frame: bytes | bytearray | memoryview) -> Message:
        """Decode ``frame``, recording the outcome in this context's CRC stats."""
        return decode_message(frame, self.crc_stats)

    # ---- controller side -----------------------------------------------

    def _require(self, role: Role, action: str) -> None:
        if self.role is not role:
            raise RoleError(f"{action} requires the {role.name.lower()} role")

    def controller_send(self, target_addr: int, msg: Message, write_fn: WriteFn) -> None:
        """Encode ``msg`` and hand the frame to ``write_fn(addr, frame)``."""
        self._require(Role.CONTROLLER, "send")
        frame = encode_message(msg)
        write_fn(target_addr, frame)

    def controller_read(self, target_addr: int, read_fn: ReadFn) -> Message:
        """Read a frame with ``read_fn(addr, max_len, timeout_us)`` and decode it."""
        self._require(Role.CONTROLLER, "read")
        data = bytes(read_fn(target_addr, MESSAGE_MAX_SIZE, 0))[:MESSAGE_MAX_SIZE]
        if len(data) < MIN_FRAME_LEN:
            raise FrameError(f"short read ({len(data)} bytes)")
        return self.decode(data)

    # ---- peripheral side -----------------------------------------------

    def peripheral_handle_receive(
        self, frame: bytes | bytearray | memoryview
    ) -> Message:
        """Decode a received frame and dispatch it; return the decoded message.

        A SET_REPLY frame only selects the opcode served by the next reply
        and is not passed to callbacks or handlers.
        """
        self._require(Role.PERIPHERAL, "receive")
        msg = self.decode(frame)

        if msg.opcode == CMD_SET_REPLY:
            if msg.data:
                self.requested_opcode = msg.data[0]
            return msg

        if self.on_message is not None:
            self.on_message(self, msg)

        slot = self._handlers.get(msg.opcode)
        if slot is not None:
            slot.fn(self, msg.opcode, msg.data, slot.user_data)
        return msg

    def peripheral_build_reply(self) -> bytes:
        """Build the encoded reply frame, or ``b""`` when nothing is configured.

        The reply handler for ``requested_opcode`` is preferred; the
        ``on_request`` callback is the fallback.
        """
        self._require(Role.PERIPHERAL, "reply")
        msg = Message()
        slot = self._reply_handlers.get(self.requested_opcode)
        if slot is not None:
            slot.fn(self, msg, slot.user_data)
        elif self.on_request is not None:
            self.on_request(self, msg)
        else:
            return b""
        msg.data = bytes(msg.data)
        return encode_message(msg)