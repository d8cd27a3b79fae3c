"""XOR/ADD integrity bytes used by the A131 control channel.

Every frame carries two trailing integrity bytes computed over a fixed
range of its payload:

- XOR: the bitwise XOR of the payload bytes
- ADD: the sum of the payload bytes *and* the XOR byte, truncated to 8 bits

This is unrelated to the Modbus CRC-16 used by the drive's register
read/write commands.
"""

from __future__ import annotations

from functools import reduce
from operator import xor


def xor_byte(data: bytes) -> int:
    """XOR of all bytes in ``data`` (0 for empty input)."""
    return reduce(xor, data, 0)


def add_byte(data: bytes, xor_value: int) -> int:
    """Sum of ``data`` plus ``xor_value``, truncated to one byte."""
    return (sum(data) + xor_value) & 0xFF


def xor_add(data: bytes) -> tuple[int, int]:
    """Compute the ``(xor, add)`` integrity pair for ``data``."""
    x = xor_byte(data)
    return x, add_byte(data, x)
