"""Half-duplex RS-485 line controller.

Only one side of an RS-485 pair may drive the bus at a time. Every
transmission is therefore wrapped as::

    assert DE -> settle 1 ms -> write -> hold ceil(len * byte_time) ms
              -> release DE -> turnaround 50 ms

The line controller is the only code allowed to touch the direction
signal or write to the serial channel.
"""

from __future__ import annotations

import logging
import math
import threading
import time
import weakref
from typing import Callable, Protocol

from ..exceptions import DriveIoError, FrameTruncated
from .direction import DirectionLine

logger = logging.getLogger(__name__)

SETTLE_DELAY_MS = 1
TURNAROUND_DELAY_MS = 50

# Channels and direction lines currently owned by a live HalfDuplexLine
_owned: weakref.WeakSet = weakref.WeakSet()


class ByteChannel(Protocol):
    def write(self, data: bytes) -> int: ...

    def readable(self) -> bool: ...

    def read_byte(self, timeout: float | None = None) -> int | None: ...


def sleep_ms(ms: float) -> None:
    """Default timing source: block for ``ms`` milliseconds."""
    time.sleep(ms / 1000)


class HalfDuplexLine:
    """Owns one RS-485 line: a byte channel plus its direction signal.

    Args:
        channel: Byte channel to the transceiver.
        direction: Direction-control line (high = transmit).
        byte_time: Wire time per character, in milliseconds.
        delay: Blocking delay primitive taking milliseconds.
        clock: Monotonic clock in seconds, used for receive deadlines.

    Every transmit and receive holds :attr:`lock`. Callers running a
    multi-step exchange hold it too, so it is reentrant.

    Raises:
        RuntimeError: If the channel or direction line is already owned
            by another ``HalfDuplexLine``.
        DriveIoError: If the direction line cannot be set to receive.
    """

    def __init__(
        self,
        channel: ByteChannel,
        direction: DirectionLine,
        byte_time: float,
        delay: Callable[[float], None] = sleep_ms,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if byte_time <= 0:
            raise ValueError(f"Byte time must be positive, got {byte_time}")
        for resource in (channel, direction):
            if resource in _owned:
                raise RuntimeError(
                    f"{type(resource).__name__} is already owned by another line"
                )
        self._channel = channel
        self._direction = direction
        self._byte_time = byte_time
        self._delay = delay
        self._clock = clock
        self._released = False
        self._lock = threading.RLock()
        # Receive mode until something is sent
        self._switch(direction.deassert_line)
        _owned.add(channel)
        _owned.add(direction)

    @property
    def byte_time(self) -> float:
        return self._byte_time

    @property
    def lock(self) -> threading.RLock:
        """Reentrant lock serialising all traffic on this line."""
        return self._lock

    def clock(self) -> float:
        """Current reading of the line's monotonic clock, in seconds."""
        return self._clock()

    def release(self) -> None:
        """Give up ownership of the channel and direction line."""
        with self._lock:
            if self._released:
                return
            try:
                self._switch(self._direction.deassert_line)
            finally:
                _owned.discard(self._channel)
                _owned.discard(self._direction)
                self._released = True

    def _check_open(self) -> None:
        if self._released:
            raise RuntimeError("Line has been released")

    @staticmethod
    def _switch(action: Callable[[], None]) -> None:
        try:
            action()
        except DriveIoError:
            raise
        except OSError as e:
            raise DriveIoError(f"Direction line failed: {e}") from e

    def transmission_time(self, length: int) -> int:
        """Whole milliseconds needed to clock ``length`` bytes out."""
        return math.ceil(length * self._byte_time)

    def transmit(self, frame: bytes) -> None:
        """Send ``frame`` with the direction line held for its duration.

        A failed or short write raises at once: the hold and turnaround
        delays are skipped, and the line is returned to receive mode.

        Raises:
            DriveIoError: If the channel or the direction line fails, or
                the channel accepts fewer bytes.
        """
        frame = bytes(frame)
        with self._lock:
            self._check_open()
            try:
                self._switch(self._direction.assert_line)
                self._delay(SETTLE_DELAY_MS)
                try:
                    written = self._channel.write(frame)
                except DriveIoError:
                    raise
                except OSError as e:
                    raise DriveIoError(f"Channel write failed: {e}") from e
                if written != len(frame):
                    raise DriveIoError(
                        f"Short write: {written} of {len(frame)} bytes sent"
                    )
                logger.debug("TX %s", frame.hex(" "))
                self._delay(self.transmission_time(len(frame)))
            except BaseException:
                # Keep the first error; a failing release is only logged
                try:
                    self._switch(self._direction.deassert_line)
                except DriveIoError as e:
                    logger.warning("Could not return line to receive mode: %s", e)
                raise
            self._switch(self._direction.deassert_line)
            self._delay(TURNAROUND_DELAY_MS)

    def flush_input(self) -> int:
        """Discard bytes already buffered by the channel.

        Returns:
            Number of bytes dropped.
        """
        dropped = 0
        with self._lock:
            self._check_open()
            while self._channel.readable():
                if self._channel.read_byte(0) is None:
                    break
                dropped += 1
        if dropped:
            logger.debug("Discarded %d stale bytes", dropped)
        return dropped

    def receive_exact(
        self,
        n: int,
        timeout: float | None,
        flush: bool = True,
    ) -> bytes:
        """Read exactly ``n`` bytes within ``timeout`` seconds.

        Args:
            n: Number of bytes to read.
            timeout: Overall deadline in seconds; ``None`` waits forever.
            flush: Drop stale buffered bytes before reading.

        Raises:
            FrameTruncated: If the deadline passes first. The partial
                data is available as ``received``.
        """
        received = bytearray()
        with self._lock:
            self._check_open()
            if flush:
                self.flush_input()
            deadline = None if timeout is None else self._clock() + timeout
            while len(received) < n:
                remaining = None
                if deadline is not None:
                    remaining = deadline - self._clock()
                    if remaining <= 0:
                        break
                byte = self._channel.read_byte(remaining)
                if byte is None:
                    break
                received.append(byte)

        if len(received) < n:
            raise FrameTruncated(
                f"Timed out after {len(received)} of {n} bytes",
                received=bytes(received),
            )
        logger.debug("RX %s", bytes(received).hex(" "))
        return bytes(received)
