"""Spindle driver for A131-family inverters.

Control writes are fire-and-forget: the inverter never acknowledges a
command frame, so success means the frame went out on the wire. Speed
feedback comes from the status frame the inverter broadcasts on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import READ_TIMEOUT_S
from .exceptions import DriveIoError, DriveTimeout, FrameMalformed, FrameTruncated
from .protocol.commands import (
    Direction,
    build_set_speed,
    build_turn_off,
    build_turn_on,
    speed_bits,
)
from .protocol.framing import (
    STATUS_FRAME_SIZE,
    CommandFrame,
    StatusFrame,
    decode_status,
    scan_status,
)
from .protocol.parser import (
    FrequencyReading,
    StatusReport,
    decode_frequency,
    decode_report,
)
from .transport.half_duplex import HalfDuplexLine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpindleState:
    """Commanded spindle state. Faults are reported separately."""

    is_on: bool = False


class SpindleDriver:
    """Turns the spindle on and off, sets its speed and reads it back.

    Calls are serialised on the line's lock: each one runs its whole
    transmit or receive sequence before the next may start, even when
    several drivers share one line.

    Usage::

        line = HalfDuplexLine(channel, RtsDirectionLine(channel), channel.byte_time_ms)
        spindle = SpindleDriver(line)
        spindle.set_speed(12000)
        spindle.turn_on()
        reading = spindle.report_speed()
    """

    def __init__(
        self,
        line: HalfDuplexLine,
        direction: Direction = Direction.FORWARD,
        read_timeout: float = READ_TIMEOUT_S,
    ) -> None:
        self._line = line
        self._direction = direction
        self._read_timeout = read_timeout
        self._state = SpindleState()

    @property
    def state(self) -> SpindleState:
        return self._state

    @property
    def is_on(self) -> bool:
        return self._state.is_on

    @property
    def direction(self) -> Direction:
        return self._direction

    def _send(self, frame: CommandFrame) -> None:
        try:
            self._line.transmit(frame.to_bytes())
        except DriveIoError as e:
            logger.warning("Failed to send %r: %s", frame, e)
            raise

    def turn_on(self) -> None:
        """Start the spindle in the configured direction.

        Raises:
            DriveIoError: If the frame could not be sent.
        """
        frame = build_turn_on(self._direction)
        with self._line.lock:
            self._send(frame)
            self._state = SpindleState(is_on=True)
        logger.info("Spindle on (%s)", self._direction.value)

    def turn_off(self) -> None:
        """Stop the spindle.

        Raises:
            DriveIoError: If the frame could not be sent.
        """
        frame = build_turn_off()
        with self._line.lock:
            self._send(frame)
            self._state = SpindleState(is_on=False)
        logger.info("Spindle off")

    def set_speed(self, target_rpm: int) -> None:
        """Command a new target speed without changing run/stop state.

        The frequency is ``(target_rpm // 60) * 100`` hundredths of a Hz.
        D3 carries RUN while the spindle is on, and never the direction
        bit, so rotation set at :meth:`turn_on` is left alone.

        Raises:
            ValueError: If ``target_rpm`` is negative, between 1 and 59,
                or beyond the 16-bit frequency payload.
            DriveIoError: If the frame could not be sent.
        """
        with self._line.lock:
            control = speed_bits(self._state.is_on)
            frame = build_set_speed(target_rpm, control)
            self._send(frame)
        logger.info("Spindle speed set to %d RPM (%d cHz)", target_rpm, frame.frequency)

    def report_speed(self, timeout: float | None = None) -> FrequencyReading:
        """Read the next status frame and return its frequency.

        Stale input is discarded first, so the reading is from a frame
        that started after the call.

        Raises:
            DriveTimeout: If 13 bytes did not arrive within ``timeout``
                seconds (the configured read timeout by default).
            FrameMalformed: If the frame fails validation.
        """
        with self._line.lock:
            data = self._receive(timeout)
            try:
                frame = decode_status(data)
            except FrameMalformed as e:
                logger.warning("Rejected status frame %s: %s", data.hex(" "), e)
                raise
        return decode_frequency(frame)

    def read_status(self, timeout: float | None = None, resync: bool = False) -> StatusReport:
        """Read the next status frame with its indicator bits.

        Args:
            timeout: Overall deadline in seconds.
            resync: On a malformed frame, slide forward to the next
                valid header instead of failing, within the same deadline.

        Raises:
            DriveTimeout: If no valid frame arrived in time.
            FrameMalformed: If the frame fails validation and ``resync``
                is off.
        """
        timeout = self._read_timeout if timeout is None else timeout
        with self._line.lock:
            deadline = self._line.clock() + timeout
            data = self._receive(timeout)
            if not resync:
                try:
                    return decode_report(decode_status(data))
                except FrameMalformed as e:
                    logger.warning("Rejected status frame %s: %s", data.hex(" "), e)
                    raise
            return decode_report(self._resync(data, deadline))

    def _receive(self, timeout: float | None, n: int = STATUS_FRAME_SIZE,
                 flush: bool = True) -> bytes:
        timeout = self._read_timeout if timeout is None else timeout
        try:
            return self._line.receive_exact(n, timeout, flush=flush)
        except FrameTruncated as e:
            logger.warning("No status frame within %.3f s (%d bytes)", timeout, len(e.received))
            raise DriveTimeout(
                f"No status frame within {timeout:.3f} s", received=e.received
            ) from e

    def _resync(self, data: bytes, deadline: float) -> StatusFrame:
        buffer = data
        while True:
            frame, rest = scan_status(buffer)
            if frame is not None:
                return frame
            missing = STATUS_FRAME_SIZE - len(rest)
            logger.debug("Resynchronising, need %d more bytes", missing)
            remaining = deadline - self._line.clock()
            if remaining <= 0:
                raise DriveTimeout("No valid status frame before the deadline",
                                   received=rest)
            try:
                more = self._receive(remaining, n=missing, flush=False)
            except DriveTimeout as e:
                raise DriveTimeout(str(e), received=rest + e.received) from e
            buffer = rest + more