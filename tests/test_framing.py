"""Tests for command frame building and status frame parsing."""

import pytest

from a131_spindle.exceptions import FrameMalformed, FrameTruncated
from a131_spindle.protocol.framing import (
    COMMAND_FRAME_SIZE,
    STATUS_FRAME_SIZE,
    CommandFrame,
    StatusFrame,
    decode_status,
    encode_command,
    encode_status,
    scan_status,
)
from a131_spindle.utils.checksum import xor_add

# 25.00 Hz, clockwise LED lit
STATUS_25HZ = bytes.fromhex("00 55 00 02 05 00 00 02 01 00 51 B0 FF")


def test_command_frame_size():
    """Every command frame is exactly 9 bytes."""
    assert len(encode_command(2500, 0x00).to_bytes()) == COMMAND_FRAME_SIZE


def test_command_frame_layout():
    """Frequency 2500 (25.00 Hz) with no control bits."""
    frame = encode_command(2500, 0x00).to_bytes()
    assert frame == bytes.fromhex("00 55 09 C4 00 01 CC 9A FF")


def test_integrity_bytes_for_every_control_value():
    """XOR and ADD follow the payload for all 256 D3 values."""
    for d3 in range(256):
        frame = encode_command(0x1234, d3)
        d1, d2 = 0x12, 0x34
        expected_xor = d1 ^ d2 ^ d3 ^ 0x01
        assert frame.xor_byte == expected_xor
        assert frame.add_byte == (d1 + d2 + d3 + 0x01 + expected_xor) % 256


def test_integrity_bytes_depend_on_control_byte():
    """Run and stop frames must not share integrity bytes."""
    run = encode_command(0, 0x01)
    stop = encode_command(0, 0x02)
    assert (run.xor_byte, run.add_byte) != (stop.xor_byte, stop.add_byte)


def test_encode_command_bounds():
    with pytest.raises(ValueError):
        encode_command(0x10000, 0)
    with pytest.raises(ValueError):
        encode_command(-1, 0)
    with pytest.raises(ValueError):
        encode_command(0, 0x100)


def test_command_frame_from_bytes():
    """A built frame parses back to the same fields."""
    raw = encode_command(2500, 0x81).to_bytes()
    parsed = CommandFrame.from_bytes(raw)
    assert parsed.frequency == 2500
    assert parsed.control == 0x81


def test_command_frame_rejects_stale_integrity_bytes():
    """Reusing another payload's XOR/ADD bytes is malformed."""
    # The legacy stop/speed frames carried fixed 0x54 0xA9 integrity bytes
    legacy = bytes.fromhex("00 55 00 00 01 01 54 A9 FF")
    with pytest.raises(FrameMalformed):
        CommandFrame.from_bytes(legacy)


def test_command_frame_short():
    with pytest.raises(FrameTruncated):
        CommandFrame.from_bytes(b"\x00\x55\x00")


def test_encode_status_known_frame():
    """Digits 0,2,5,0,0 with the clockwise bit."""
    assert encode_status([0, 2, 5, 0, 0], 0x02) == STATUS_25HZ


def test_decode_status_valid():
    frame = decode_status(STATUS_25HZ)
    assert frame.digits == (0, 2, 5, 0, 0)
    assert frame.indicators == 0x02
    assert frame.raw == STATUS_25HZ


def test_decode_status_bad_terminator():
    """Any last byte other than 0xFF is rejected."""
    for last in (0x00, 0x7F, 0xFE):
        bad = STATUS_25HZ[:-1] + bytes([last])
        with pytest.raises(FrameMalformed):
            decode_status(bad)


def test_decode_status_truncated():
    """Short input is truncated, not malformed, and keeps the partial data."""
    with pytest.raises(FrameTruncated) as exc_info:
        decode_status(STATUS_25HZ[:12])
    assert exc_info.value.received == STATUS_25HZ[:12]


def test_decode_status_too_long():
    with pytest.raises(FrameMalformed):
        decode_status(STATUS_25HZ + b"\x00")


def test_decode_status_bad_checksum():
    """Corrupt integrity bytes are rejected."""
    bad = bytearray(STATUS_25HZ)
    bad[10] ^= 0xFF
    with pytest.raises(FrameMalformed):
        decode_status(bytes(bad))


def test_decode_status_corrupt_digit():
    """A flipped digit no longer matches the integrity bytes."""
    bad = bytearray(STATUS_25HZ)
    bad[4] = 0x06
    with pytest.raises(FrameMalformed):
        decode_status(bytes(bad))


def test_decode_status_bad_header():
    bad = bytearray(STATUS_25HZ)
    bad[0] = 0x01
    with pytest.raises(FrameMalformed):
        decode_status(bytes(bad))


def test_decode_status_digit_out_of_range():
    """Digits above 9 are rejected even with consistent integrity bytes."""
    body = bytes([0x55, 0, 0x0A, 5, 0, 0, 0, 0x01, 0x00])
    x, a = xor_add(body)
    raw = b"\x00" + body + bytes([x, a, 0xFF])
    with pytest.raises(FrameMalformed):
        decode_status(raw)


def test_encode_status_bounds():
    with pytest.raises(ValueError):
        encode_status([1, 2, 3, 4])
    with pytest.raises(ValueError):
        encode_status([1, 2, 3, 4, 10])


def test_scan_status_skips_leading_noise():
    frame, rest = scan_status(b"\x12\x34\xFF" + STATUS_25HZ + b"\x00")
    assert isinstance(frame, StatusFrame)
    assert frame.digits == (0, 2, 5, 0, 0)
    assert rest == b"\x00"


def test_scan_status_skips_false_header():
    """A 00 55 pair inside garbage does not stop the scan."""
    frame, rest = scan_status(b"\x00\x55\x09" + STATUS_25HZ)
    assert frame is not None
    assert frame.raw == STATUS_25HZ
    assert rest == b""


def test_scan_status_partial_frame():
    """An incomplete frame is kept for the next read."""
    frame, rest = scan_status(b"\xAA" + STATUS_25HZ[:7])
    assert frame is None
    assert rest == STATUS_25HZ[:7]


def test_scan_status_no_header():
    assert scan_status(b"\x01\x02\x03") == (None, b"")
    assert scan_status(b"\x01\x02\x00") == (None, b"\x00")


def test_status_frame_size_constant():
    assert len(STATUS_25HZ) == STATUS_FRAME_SIZE


def test_status_frame_repr():
    r = repr(decode_status(STATUS_25HZ))
    assert "025.00" in r
