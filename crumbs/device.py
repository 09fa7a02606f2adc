"""Raw I2C register helpers bound to a device address and its transport."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from crumbs.context import Context, ReadFn, WriteFn

__all__ = [
    "MAX_WRITE",
    "I2CDeviceError",
    "InvalidArgumentError",
    "WriteError",
    "ReadError",
    "ShortReadError",
    "SizeError",
    "NoRepeatedStartError",
    "WriteReadFn",
    "DelayFn",
    "Device",
]

MAX_WRITE = 64

WriteReadFn = Callable[[int, bytes, int, int, bool], bytes]
DelayFn = Callable[[int], None]


class I2CDeviceError(Exception):
    """Base class for device transfer errors."""


class InvalidArgumentError(I2CDeviceError, ValueError):
    """A transfer was requested with missing transport or bad arguments."""


class WriteError(I2CDeviceError):
    """The write phase failed."""


class ReadError(I2CDeviceError):
    """The read phase failed."""


class ShortReadError(I2CDeviceError):
    """Fewer bytes than requested were read."""

    def __init__(self, expected: int, data: bytes) -> None:
        super().__init__(f"short read: expected {expected} bytes, got {len(data)}")
        self.expected = expected
        self.data = data


class SizeError(I2CDeviceError):
    """A combined register write is larger than the transfer limit."""


class NoRepeatedStartError(I2CDeviceError):
    """A repeated-start transaction was required but is not available."""


def _register_bytes(reg: int, width: int) -> bytes:
    try:
        return reg.to_bytes(width, "big")
    except OverflowError as exc:
        raise InvalidArgumentError(f"register 0x{reg:X} does not fit in {width} byte(s)") from exc


@dataclass
class Device:
    """A peripheral at ``addr`` reached through the given transport functions.

    ``write_fn(addr, data)`` and ``read_fn(addr, length, timeout_us)`` raise
    :class:`OSError` on bus failure.
    """

    addr: int
    write_fn: Optional[WriteFn] = None
    read_fn: Optional[ReadFn] = None
    ctx: Optional[Context] = None
    delay_fn: Optional[DelayFn] = None

    def write(self, data: bytes) -> None:
        """Write ``data`` in one transfer; an empty write does nothing."""
        if self.write_fn is None:
            raise InvalidArgumentError("device has no write function")
        data = bytes(data)
        if not data:
            return
        try:
            self.write_fn(self.addr, data)
        except OSError as exc:
            raise WriteError(str(exc)) from exc

    def read(self, length: int, timeout_us: int = 0) -> bytes:
        """Read exactly ``length`` bytes."""
        if self.read_fn is None:
            raise InvalidArgumentError("device has no read function")
        if length < 0:
            raise InvalidArgumentError("length must not be negative")
        if length == 0:
            return b""
        try:
            data = bytes(self.read_fn(self.addr, length, timeout_us))
        except OSError as exc:
            raise ReadError(str(exc)) from exc
        if len(data) != length:
            raise ShortReadError(length, data)
        return data

    def write_then_read(
        self,
        tx: bytes,
        rx_len: int,
        timeout_us: int = 0,
        require_repeated_start: bool = False,
        write_read_fn: Optional[WriteReadFn] = None,
    ) -> bytes:
        """Write ``tx`` then read ``rx_len`` bytes.

        With ``write_read_fn(addr, tx, rx_len, timeout_us, require_repeated_start)``
        the transfer is done in one call; otherwise a separate write and read
        are used, which cannot satisfy ``require_repeated_start``.
        """
        tx = bytes(tx)
        if rx_len < 0:
            raise InvalidArgumentError("rx_len must not be negative")

        if write_read_fn is not None:
            try:
                data = bytes(
                    write_read_fn(self.addr, tx, rx_len, timeout_us, require_repeated_start)
                )
            except NoRepeatedStartError:
                raise
            except OSError as exc:
                raise ReadError(str(exc)) from exc
            if len(data) != rx_len:
                raise ShortReadError(rx_len, data)
            return data

        if require_repeated_start:
            raise NoRepeatedStartError("no combined write/read transport available")

        if tx:
            self.write(tx)
        return self.read(rx_len, timeout_us) if rx_len > 0 else b""

    def read_reg(
        self,
        reg: bytes,
        out_len: int,
        timeout_us: int = 0,
        require_repeated_start: bool = False,
        write_read_fn: Optional[WriteReadFn] = None,
    ) -> bytes:
        """Write the register address bytes ``reg`` and read ``out_len`` bytes."""
        return self.write_then_read(
            reg, out_len, timeout_us, require_repeated_start, write_read_fn
        )

    def write_reg(self, reg: bytes, data: bytes) -> None:
        """Write the register address bytes ``reg`` followed by ``data`` in one transfer."""
        if self.write_fn is None:
            raise InvalidArgumentError("device has no write function")
        reg = bytes(reg)
        data = bytes(data)
        if not reg and not data:
            raise InvalidArgumentError("nothing to write")
        if not reg:
            self.write(data)
            return
        if not data:
            self.write(reg)
            return
        if len(reg) + len(data) > MAX_WRITE:
            raise SizeError(
                f"register write of {len(reg) + len(data)} bytes exceeds {MAX_WRITE}"
            )
        self.write(reg + data)

    def read_reg_u8(
        self,
        reg: int,
        out_len: int,
        timeout_us: int = 0,
        require_repeated_start: bool = False,
        write_read_fn: Optional[WriteReadFn] = None,
    ) -> bytes:
        """Read ``out_len`` bytes from an 8-bit register."""
        return self.read_reg(
            _register_bytes(reg, 1), out_len, timeout_us, require_repeated_start, write_read_fn
        )

    def write_reg_u8(self, reg: int, data: bytes) -> None:
        """Write ``data`` to an 8-bit register."""
        self.write_reg(_register_bytes(reg, 1), data)

    def read_reg_u16be(
        self,
        reg: int,
        out_len: int,
        timeout_us: int = 0,
        require_repeated_start: bool = False,
        write_read_fn: Optional[WriteReadFn] = None,
    ) -> bytes:
        """Read ``out_len`` bytes from a 16-bit big-endian register."""
        return self.read_reg(
            _register_bytes(reg, 2), out_len, timeout_us, require_repeated_start, write_read_fn
        )

    def write_reg_u16be(self, reg: int, data: bytes) -> None:
        """Write ``data`` to a 16-bit big-endian register."""
        self.write_reg(_register_bytes(reg, 2), data)