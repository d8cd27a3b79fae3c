"""Frame builder and parser for the A131 inverter control channel.

Command frame (host -> inverter, 9 bytes)::

    +------+------+----+----+----+------+-----+-----+------+
    | 0x00 | 0x55 | D1 | D2 | D3 | 0x01 | XOR | ADD | 0xFF |
    +------+------+----+----+----+------+-----+-----+------+

- D1:D2: target frequency, big-endian, 0.01 Hz units
- D3: control bits (see :class:`~a131_spindle.protocol.commands.ControlBits`)
- XOR: D1 ^ D2 ^ D3 ^ 0x01
- ADD: D1 + D2 + D3 + 0x01 + XOR, truncated to one byte

Status frame (inverter -> host, 13 bytes, sent unsolicited)::

    +------+------+----+----+----+----+----+----+------+------+-----+-----+------+
    | 0x00 | 0x55 | D1 | D2 | D3 | D4 | D5 | D6 | 0x01 | 0x00 | XOR | ADD | 0xFF |
    +------+------+----+----+----+----+----+----+------+------+-----+-----+------+

- D1..D5: digits shown on the drive's display, most significant first
- D6: indicator bits (see :class:`~a131_spindle.protocol.parser.Indicator`)
- XOR: XOR of bytes 0x55 .. 0x00 (offsets 1-9)
- ADD: sum of bytes 0x55 .. XOR (offsets 1-10), truncated to one byte
"""

from __future__ import annotations

from dataclasses import dataclass

from ..exceptions import FrameMalformed, FrameTruncated
from ..utils.checksum import xor_add

HEADER = b"\x00\x55"
COMMAND_TAIL = 0x01
TERMINATOR = 0xFF
STATUS_FIXED = b"\x01\x00"

COMMAND_FRAME_SIZE = 9
STATUS_FRAME_SIZE = 13
DIGIT_COUNT = 5

# Offsets within the status frame
OFF_DIGITS = 2
OFF_INDICATORS = 7
OFF_FIXED = 8
OFF_XOR = 10
OFF_ADD = 11
OFF_TERMINATOR = 12


def _hex(data: bytes) -> str:
    return data.hex(" ") if data else "(empty)"


@dataclass(frozen=True)
class CommandFrame:
    """A 9-byte control frame sent to the inverter."""

    frequency: int  # D1:D2, 0.01 Hz
    control: int  # D3
    xor_byte: int
    add_byte: int

    @property
    def d1(self) -> int:
        return (self.frequency >> 8) & 0xFF

    @property
    def d2(self) -> int:
        return self.frequency & 0xFF

    @property
    def payload(self) -> bytes:
        """The bytes covered by the integrity fields: D1 D2 D3 0x01."""
        return bytes([self.d1, self.d2, self.control, COMMAND_TAIL])

    def to_bytes(self) -> bytes:
        return (
            HEADER
            + self.payload
            + bytes([self.xor_byte, self.add_byte, TERMINATOR])
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> CommandFrame:
        """Parse and validate a 9-byte command frame.

        Raises:
            FrameTruncated: If fewer than 9 bytes are given.
            FrameMalformed: On any layout or integrity mismatch.
        """
        if len(data) < COMMAND_FRAME_SIZE:
            raise FrameTruncated(
                f"Command frame needs {COMMAND_FRAME_SIZE} bytes, got {len(data)}",
                received=data,
            )
        if len(data) != COMMAND_FRAME_SIZE:
            raise FrameMalformed(
                f"Command frame must be {COMMAND_FRAME_SIZE} bytes, got {len(data)}"
            )
        if data[0:2] != HEADER or data[5] != COMMAND_TAIL or data[8] != TERMINATOR:
            raise FrameMalformed(f"Bad command frame layout: {_hex(data)}")
        expected = xor_add(data[2:6])
        if (data[6], data[7]) != expected:
            raise FrameMalformed(
                f"Command frame integrity mismatch: got {data[6]:02X} {data[7]:02X}, "
                f"expected {expected[0]:02X} {expected[1]:02X}"
            )
        return cls(
            frequency=(data[2] << 8) | data[3],
            control=data[4],
            xor_byte=data[6],
            add_byte=data[7],
        )

    def __repr__(self) -> str:
        return (
            f"CommandFrame(frequency={self.frequency}, control=0x{self.control:02X}, "
            f"bytes={_hex(self.to_bytes())})"
        )


@dataclass(frozen=True)
class StatusFrame:
    """A validated 13-byte status frame received from the inverter."""

    digits: tuple[int, ...]  # D1..D5, most significant first
    indicators: int  # D6
    raw: bytes

    def __repr__(self) -> str:
        shown = "".join(str(d) for d in self.digits)
        return (
            f"StatusFrame(display={shown[:3]}.{shown[3:]}, "
            f"indicators=0b{self.indicators:08b})"
        )


def encode_command(d1d2: int, d3: int) -> CommandFrame:
    """Build a command frame with freshly computed integrity bytes.

    The integrity bytes depend only on the payload, so every command
    (run, stop, speed) goes through this one function.

    Args:
        d1d2: Frequency payload in 0.01 Hz units (0-65535).
        d3: Control bits (0-255).
    """
    if not 0 <= d1d2 <= 0xFFFF:
        raise ValueError(f"Frequency payload must be 0-65535, got {d1d2}")
    if not 0 <= d3 <= 0xFF:
        raise ValueError(f"Control byte must be 0-255, got {d3}")
    payload = bytes([(d1d2 >> 8) & 0xFF, d1d2 & 0xFF, d3, COMMAND_TAIL])
    x, a = xor_add(payload)
    return CommandFrame(frequency=d1d2, control=d3, xor_byte=x, add_byte=a)


def encode_status(digits: list[int] | tuple[int, ...], indicators: int = 0) -> bytes:
    """Build the 13 bytes of a status frame, as the inverter would send it.

    Args:
        digits: Five display digits (0-9), most significant first.
        indicators: D6 indicator bits.
    """
    if len(digits) != DIGIT_COUNT:
        raise ValueError(f"Status frame needs {DIGIT_COUNT} digits, got {len(digits)}")
    if any(not 0 <= d <= 9 for d in digits):
        raise ValueError(f"Display digits must be 0-9, got {list(digits)}")
    if not 0 <= indicators <= 0xFF:
        raise ValueError(f"Indicator byte must be 0-255, got {indicators}")
    body = HEADER[1:] + bytes(digits) + bytes([indicators]) + STATUS_FIXED
    x, a = xor_add(body)
    return HEADER[:1] + body + bytes([x, a, TERMINATOR])


def decode_status(data: bytes) -> StatusFrame:
    """Validate and parse a 13-byte status frame.

    Nothing is exposed unless the whole frame checks out.

    Raises:
        FrameTruncated: If fewer than 13 bytes are given.
        FrameMalformed: If the length, header, fixed bytes, digits,
            terminator or integrity bytes are wrong.
    """
    data = bytes(data)
    if len(data) < STATUS_FRAME_SIZE:
        raise FrameTruncated(
            f"Status frame needs {STATUS_FRAME_SIZE} bytes, got {len(data)}",
            received=data,
        )
    if len(data) != STATUS_FRAME_SIZE:
        raise FrameMalformed(
            f"Status frame must be {STATUS_FRAME_SIZE} bytes, got {len(data)}"
        )
    if data[OFF_TERMINATOR] != TERMINATOR:
        raise FrameMalformed(
            f"Status frame terminator is 0x{data[OFF_TERMINATOR]:02X}, expected 0xFF"
        )
    if data[0:2] != HEADER or data[OFF_FIXED:OFF_XOR] != STATUS_FIXED:
        raise FrameMalformed(f"Bad status frame layout: {_hex(data)}")

    expected = xor_add(data[1:OFF_XOR])
    if (data[OFF_XOR], data[OFF_ADD]) != expected:
        raise FrameMalformed(
            f"Status frame integrity mismatch: got {data[OFF_XOR]:02X} "
            f"{data[OFF_ADD]:02X}, expected {expected[0]:02X} {expected[1]:02X}"
        )

    digits = tuple(data[OFF_DIGITS:OFF_DIGITS + DIGIT_COUNT])
    if any(d > 9 for d in digits):
        raise FrameMalformed(f"Status frame digits out of range: {list(digits)}")

    return StatusFrame(digits=digits, indicators=data[OFF_INDICATORS], raw=data)


def scan_status(buffer: bytes) -> tuple[StatusFrame | None, bytes]:
    """Find the first valid status frame in a byte stream.

    Bytes before a plausible ``00 55`` header are discarded, as are
    headers whose 13-byte window fails validation.

    Returns:
        ``(frame, rest)`` where ``rest`` follows the frame, or
        ``(None, rest)`` where ``rest`` is the tail that may still begin
        a frame once more bytes arrive.
    """
    buffer = bytes(buffer)
    start = 0
    while True:
        start = buffer.find(HEADER, start)
        if start < 0:
            # A trailing 0x00 may be the first half of the next header
            return None, buffer[-1:] if buffer.endswith(HEADER[:1]) else b""
        window = buffer[start:start + STATUS_FRAME_SIZE]
        if len(window) < STATUS_FRAME_SIZE:
            return None, buffer[start:]
        try:
            frame = decode_status(window)
        except FrameMalformed:
            start += 1
            continue
        return frame, buffer[start + STATUS_FRAME_SIZE:]
