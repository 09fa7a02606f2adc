"""Bus scanning for CRUMBS-capable devices."""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import suppress
from dataclasses import dataclass
from typing import Optional

from crumbs.context import Context, ReadFn, RoleError, WriteFn
from crumbs.message import (
    MESSAGE_MAX_SIZE,
    MIN_FRAME_LEN,
    FrameError,
    Message,
    decode_message,
)

__all__ = [
    "MAX_7BIT_ADDRESS",
    "ScanResult",
    "scan_for_crumbs",
    "scan_for_crumbs_candidates",
]

MAX_7BIT_ADDRESS = 0x7F


@dataclass(frozen=True)
class ScanResult:
    """A device that answered a scan with a valid CRUMBS frame."""

    address: int
    type_id: int


def _try_read_message(read_fn: ReadFn, addr: int, timeout_us: int) -> Optional[Message]:
    """Read one frame from ``addr``; return the message, or None when absent or invalid."""
    try:
        data = bytes(read_fn(addr, MESSAGE_MAX_SIZE, timeout_us))[:MESSAGE_MAX_SIZE]
    except OSError:
        return None
    if len(data) < MIN_FRAME_LEN:
        return None
    try:
        return decode_message(data)
    except FrameError:
        return None


def scan_for_crumbs(
    context: Optional[Context],
    start_addr: int,
    end_addr: int,
    strict: bool = False,
    write_fn: Optional[WriteFn] = None,
    read_fn: Optional[ReadFn] = None,
    max_found: int = MAX_7BIT_ADDRESS + 1,
    timeout_us: int = 0,
) -> list[ScanResult]:
    """Probe ``start_addr..end_addr`` (inclusive) for devices replying with CRUMBS frames.

    Each address is read directly first. In non-strict mode, when a write
    function and a context are available, an all-zero probe message is sent
    and the address is read once more. ``read_fn`` raising :class:`OSError`
    counts as no device. Scanning stops once ``max_found`` devices are found.
    """
    if read_fn is None:
        raise ValueError("read_fn is required")
    if max_found <= 0:
        raise ValueError("max_found must be positive")
    for name, value in (("start_addr", start_addr), ("end_addr", end_addr)):
        if not 0 <= value <= 0xFF:
            raise ValueError(f"{name} {value} does not fit in a byte")
    if start_addr > end_addr:
        raise ValueError("start_addr must not exceed end_addr")

    results: list[ScanResult] = []
    for addr in range(start_addr, end_addr + 1):
        msg = _try_read_message(read_fn, addr, timeout_us)
        if msg is None and not strict and write_fn is not None and context is not None:
            with suppress(OSError, RoleError, FrameError):
                context.controller_send(addr, Message(), write_fn)
            msg = _try_read_message(read_fn, addr, timeout_us)
        if msg is not None:
            results.append(ScanResult(addr, msg.type_id))
            if len(results) >= max_found:
                break
    return results


def scan_for_crumbs_candidates(
    context: Optional[Context],
    candidates: Iterable[int],
    strict: bool = False,
    write_fn: Optional[WriteFn] = None,
    read_fn: Optional[ReadFn] = None,
    max_found: int = MAX_7BIT_ADDRESS + 1,
    timeout_us: int = 0,
) -> list[ScanResult]:
    """Probe only the listed addresses, in order, skipping duplicates.

    An address above 0x7F raises :class:`ValueError`.
    """
    addresses = list(candidates)
    if not addresses:
        raise ValueError("candidates must not be empty")
    if read_fn is None:
        raise ValueError("read_fn is required")
    if max_found <= 0:
        raise ValueError("max_found must be positive")

    seen: set[int] = set()
    results: list[ScanResult] = []
    for addr in addresses:
        if len(results) >= max_found:
            break
        if not 0 <= addr <= MAX_7BIT_ADDRESS:
            raise ValueError(f"candidate address 0x{addr:X} is not a 7-bit address")
        if addr in seen:
            continue
        seen.add(addr)
        results.extend(
            scan_for_crumbs(
                context,
                addr,
                addr,
                strict,
                write_fn,
                read_fn,
                max_found - len(results),
                timeout_us,
            )
        )
    return results