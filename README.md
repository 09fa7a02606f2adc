# crumbs

`crumbs` is a small framing protocol for short, CRC-protected messages
exchanged between an I2C controller and its peripherals. It has no runtime
dependencies. You supply the bus access as plain Python callables.

## Wire format

```
[type_id][opcode][data_len][data ...][crc8]
```

- A frame carries at most 27 payload bytes (`MAX_PAYLOAD`), so it is at most
  31 bytes long (`MESSAGE_MAX_SIZE`).
- The CRC-8 covers the header and the payload. It uses polynomial `0x07`,
  initial value `0x00`, no reflection and no final XOR.
- Opcode `0xFE` (`CMD_SET_REPLY`) is reserved. A peripheral uses it to choose
  which opcode its next reply serves.

## Modules

### `crumbs.crc`

- `crc8(data)` returns the CRC-8 of a byte string. An empty input gives 0.
- `crc8_update(crc, data)` feeds more bytes into a running CRC value.

### `crumbs.message`

- `Message(type_id, opcode, data, crc8)` is a dataclass for one message.
- `encode_message(msg)` returns the frame as bytes. It raises `FrameError`
  in two cases: the payload is longer than 27 bytes, or the type id or opcode
  does not fit in a byte.
- `decode_message(frame, stats=None)` returns a `Message`. Bytes after the
  CRC are ignored.
  - A frame that is too short, declares too long a payload or is truncated
    raises `FrameError`.
  - A frame with a bad checksum raises `CrcMismatchError`, a subclass of
    `FrameError` with `received` and `computed` attributes.
- `CrcStats` tracks `error_count` and `last_crc_ok`. Only CRC mismatches add
  to the count. Any failed decode clears `last_crc_ok`. `reset()` sets the
  count to zero and marks the last CRC as good.

### `crumbs.context`

`Context(role, address=0, max_handlers=16)` holds the state of one
endpoint. `Role` is `CONTROLLER` or `PERIPHERAL`. A controller's address is
always 0.

Controller side:

- `controller_send(target_addr, msg, write_fn)` encodes the message and calls
  `write_fn(addr, frame)`.
- `controller_read(target_addr, read_fn)` calls
  `read_fn(addr, max_len, timeout_us)`, which must return bytes. It decodes
  the result and records the outcome in the context's CRC stats. A read
  shorter than 4 bytes raises `FrameError`.

Peripheral side:

- `peripheral_handle_receive(frame)` decodes a frame and returns the message.
  - A SET_REPLY frame sets `requested_opcode` to its first payload byte and
    nothing else. An empty payload leaves `requested_opcode` unchanged.
  - Any other frame goes first to `on_message(ctx, msg)`, then to the handler
    registered for its opcode as `fn(ctx, opcode, data, user_data)`.
- `peripheral_build_reply()` returns the encoded reply, or `b""` when nothing
  is configured.
  - It calls the reply handler registered for `requested_opcode` as
    `fn(ctx, msg, user_data)`.
  - If there is no such handler, it falls back to `on_request(ctx, msg)`.
  - The callback fills in the message it is passed.

Configuration:

- `set_callbacks(on_message, on_request, user_data)` installs the general
  callbacks.
- `register_handler`, `unregister_handler` and `register_reply_handler`
  manage the per-opcode tables. Passing `fn=None` removes an entry.
- A full table raises `HandlerTableFull`.

CRC statistics are available as `crc_error_count`, `last_crc_ok` and
`reset_crc_stats()`. `decode(frame)` decodes a frame against this context's
statistics.

A controller operation on a peripheral context raises `RoleError`, and so
does a peripheral operation on a controller context.

### `crumbs.scan`

- `scan_for_crumbs(context, start_addr, end_addr, strict=False, write_fn=None, read_fn=None, max_found=128, timeout_us=0)`
  probes an inclusive address range.
  - Each address is read first.
  - In non-strict mode, if the read fails and a context and a write function
    are given, an all-zero probe message is sent and the address is read
    again.
  - A `read_fn` that raises `OSError` counts as no device.
  - The result is a list of `ScanResult(address, type_id)` entries. Scanning
    stops after `max_found` devices.
- `scan_for_crumbs_candidates(context, candidates, ...)` probes only the
  listed addresses, in order, and skips duplicates. An address above `0x7F`
  raises `ValueError`.

### `crumbs.device`

`Device(addr, write_fn=None, read_fn=None, ctx=None, delay_fn=None)` is a
raw register-style helper for one peripheral address. Its methods are:

- `write(data)`
- `read(length, timeout_us=0)`, which returns exactly `length` bytes
- `write_then_read(tx, rx_len, timeout_us=0, require_repeated_start=False, write_read_fn=None)`
- `read_reg(reg, out_len, ...)` and `write_reg(reg, data)`, where `reg` is
  the register address as bytes
- `read_reg_u8`, `write_reg_u8`, `read_reg_u16be` and `write_reg_u16be`,
  where `reg` is an integer

A combined transfer goes through
`write_read_fn(addr, tx, rx_len, timeout_us, require_repeated_start)`.
Without one, a required repeated start raises `NoRepeatedStartError`.

Errors are subclasses of `I2CDeviceError`:

| Error | Raised when |
| --- | --- |
| `InvalidArgumentError` | A transport function is missing or an argument is bad |
| `WriteError` | `write_fn` raised `OSError` |
| `ReadError` | the read raised `OSError` |
| `ShortReadError` | fewer bytes came back than requested |
| `SizeError` | a combined register write is longer than 64 bytes |

### `crumbs.led`

Controller commands for a four-LED peripheral with type id `0x01`. Each
function takes a `Device` that has a controller `ctx`, a `write_fn` and, for
reads, a `read_fn`.

- `send_set_all(dev, mask)` sets all four LEDs from a bit mask.
- `send_set_one(dev, led_idx, state)` sets one LED.
- `send_blink(dev, led_idx, enable, period_ms)` configures blinking for one
  LED.
- `query_state(dev)` and `query_blink(dev)` send only the SET_REPLY request.
- `get_state(dev, delay_us=0)` queries, calls `delay_fn` if one is set, reads
  the reply and returns the state mask.
- `get_blink(dev, delay_us=0)` does the same and returns a
  `BlinkConfig(enable, period_ms)`.
- A reply with the wrong type id or opcode raises `ReplyMismatchError`.

## Example

```python
from crumbs.context import Context, Role
from crumbs.message import Message

sent = []

def write_fn(addr, frame):
    sent.append((addr, bytes(frame)))

controller = Context(Role.CONTROLLER)
controller.controller_send(0x20, Message(type_id=0x01, opcode=0x02, data=b"\xaa"), write_fn)

peripheral = Context(Role.PERIPHERAL, 0x20)
peripheral.register_handler(0x02, lambda ctx, opcode, data, user_data: print(opcode, data))
peripheral.peripheral_handle_receive(sent[0][1])
```

## What this package does not do

- It does not open or drive an I2C bus. There is no Linux or microcontroller
  bus backend, and no timer or delay implementation.
- All bus traffic goes through the write, read and delay callables you pass
  in.
- There is no command-line tool.

## Running the tests

```
pip install -e .[test]
pytest
```