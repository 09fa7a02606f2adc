import pytest

from crumbs.crc import crc8
from crumbs.message import (
    CMD_SET_REPLY,
    MAX_PAYLOAD,
    MESSAGE_MAX_SIZE,
    CrcMismatchError,
    CrcStats,
    FrameError,
    Message,
    decode_message,
    encode_message,
)


def test_encode_wire_layout():
    frame = encode_message(Message(type_id=0x01, opcode=0x02, data=b"\xaa\xbb"))
    assert frame[:5] == b"\x01\x02\x02\xaa\xbb"
    assert len(frame) == 6
    assert frame[-1] == crc8(frame[:-1])


def test_encode_empty_payload_is_four_bytes():
    frame = encode_message(Message(type_id=0x01, opcode=0x02))
    assert len(frame) == 4
    assert frame[2] == 0


def test_encode_max_payload_fills_max_frame():
    frame = encode_message(Message(1, 2, bytes(range(MAX_PAYLOAD))))
    assert len(frame) == MESSAGE_MAX_SIZE


def test_encode_payload_too_large():
    with pytest.raises(FrameError):
        encode_message(Message(1, 2, bytes(MAX_PAYLOAD + 1)))


def test_encode_rejects_out_of_range_opcode():
    with pytest.raises(FrameError):
        encode_message(Message(1, 0x100))


def test_roundtrip():
    msg = Message(type_id=0x10, opcode=0x20, data=b"\x42\x34\x12\xef\xbe\xad\xde")
    decoded = decode_message(encode_message(msg))
    assert decoded.type_id == 0x10
    assert decoded.opcode == 0x20
    assert decoded.data == msg.data
    assert decoded.crc8 == encode_message(msg)[-1]


def test_decode_ignores_trailing_bytes():
    frame = encode_message(Message(3, CMD_SET_REPLY, b"\x80"))
    decoded = decode_message(frame + b"\x00\x00")
    assert decoded.opcode == CMD_SET_REPLY
    assert decoded.data == b"\x80"


def test_decode_success_sets_last_crc_ok():
    stats = CrcStats()
    decode_message(encode_message(Message(1, 2)), stats)
    assert stats.last_crc_ok is True
    assert stats.error_count == 0


def test_decode_too_short():
    stats = CrcStats(last_crc_ok=True)
    with pytest.raises(FrameError):
        decode_message(b"\x01\x02\x00", stats)
    assert stats.last_crc_ok is False
    assert stats.error_count == 0


def test_decode_data_len_too_large_is_not_crc_error():
    stats = CrcStats()
    frame = bytearray(encode_message(Message(1, 2)))
    decode_message(bytes(frame), stats)
    frame[2] ^= 0xFF
    with pytest.raises(FrameError) as excinfo:
        decode_message(bytes(frame), stats)
    assert not isinstance(excinfo.value, CrcMismatchError)
    assert stats.last_crc_ok is False
    assert stats.error_count == 0


def test_decode_truncated():
    frame = encode_message(Message(1, 2, b"\x01\x02\x03"))
    with pytest.raises(FrameError):
        decode_message(frame[:-1])


def test_crc_error_count_increments():
    stats = CrcStats()
    frame = bytearray(encode_message(Message(1, 2, b"\xaa\xbb")))
    frame[3] ^= 0xFF
    with pytest.raises(CrcMismatchError):
        decode_message(bytes(frame), stats)
    assert stats.error_count == 1
    frame[3] ^= 0x01
    with pytest.raises(CrcMismatchError):
        decode_message(bytes(frame), stats)
    assert stats.error_count == 2
    assert stats.last_crc_ok is False


def test_crc_mismatch_reports_values():
    frame = bytearray(encode_message(Message(1, 2, b"\xaa")))
    good = frame[-1]
    frame[-1] ^= 0x01
    with pytest.raises(CrcMismatchError) as excinfo:
        decode_message(bytes(frame))
    assert excinfo.value.computed == good
    assert excinfo.value.received == good ^ 0x01


def test_stats_reset():
    stats = CrcStats(error_count=5, last_crc_ok=False)
    stats.reset()
    assert stats.error_count == 0
    assert stats.last_crc_ok is True


def test_stats_record_failure_without_mismatch_keeps_count():
    stats = CrcStats(error_count=2, last_crc_ok=True)
    stats.record_failure(crc_mismatch=False)
    assert stats.error_count == 2
    assert stats.last_crc_ok is False


def test_message_data_is_bytes():
    msg = Message(1, 2, bytearray(b"\x01\x02"))
    assert msg.data == b"\x01\x02"
    assert isinstance(msg.data, bytes)