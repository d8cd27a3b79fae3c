"""Fakes for the serial channel, direction line and timing source.

Every fake appends to one shared event list so tests can check the
exact order of direction changes, delays and writes.
"""

from __future__ import annotations

import pytest

from a131_spindle.driver import SpindleDriver
from a131_spindle.transport.half_duplex import HalfDuplexLine

BYTE_TIME_9600 = 10 * 1000 / 9600


class FakeChannel:
    """Byte channel with stale (already buffered) and incoming data."""

    def __init__(self, events: list, stale: bytes = b"", incoming: bytes = b""):
        self.events = events
        self.stale = bytearray(stale)
        self.incoming = bytearray(incoming)
        self.accept: int | None = None
        self.fail: Exception | None = None
        self.written: list[bytes] = []

    def feed(self, data: bytes) -> None:
        self.incoming.extend(data)

    def write(self, data: bytes) -> int:
        self.events.append(("write", bytes(data)))
        if self.fail is not None:
            raise self.fail
        self.written.append(bytes(data))
        return len(data) if self.accept is None else self.accept

    def readable(self) -> bool:
        return bool(self.stale)

    def read_byte(self, timeout: float | None = None) -> int | None:
        if self.stale:
            return self.stale.pop(0)
        if self.incoming:
            return self.incoming.pop(0)
        return None


class FakeDirection:
    def __init__(self, events: list):
        self.events = events
        self.fail_assert: Exception | None = None
        self.fail_deassert: Exception | None = None

    def assert_line(self) -> None:
        if self.fail_assert is not None:
            raise self.fail_assert
        self.events.append("assert")

    def deassert_line(self) -> None:
        if self.fail_deassert is not None:
            raise self.fail_deassert
        self.events.append("deassert")


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def channel(events) -> FakeChannel:
    return FakeChannel(events)


@pytest.fixture
def direction(events) -> FakeDirection:
    return FakeDirection(events)


@pytest.fixture
def line(events, channel, direction):
    line = HalfDuplexLine(
        channel,
        direction,
        BYTE_TIME_9600,
        delay=lambda ms: events.append(("delay", ms)),
    )
    events.clear()
    yield line
    direction.fail_deassert = None
    line.release()


@pytest.fixture
def driver(line) -> SpindleDriver:
    return SpindleDriver(line, read_timeout=0.05)


def transmit_events(frame: bytes) -> list:
    """The event sequence one successful transmission must produce."""
    return [
        "assert",
        ("delay", 1),
        ("write", frame),
        ("delay", 10),  # ceil(9 bytes * 1.0417 ms)
        "deassert",
        ("delay", 50),
    ]
