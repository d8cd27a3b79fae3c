"""Direction-control lines for the RS-485 transceiver.

High enables the driver (transmit), low enables the receiver. Two
backends are provided: the serial adapter's RTS pin, and a Raspberry Pi
GPIO pin via ``RPi.GPIO``.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .serial_channel import SerialChannel

logger = logging.getLogger(__name__)


class DirectionLine(Protocol):
    def assert_line(self) -> None: ...

    def deassert_line(self) -> None: ...


class RtsDirectionLine:
    """Uses the serial port's RTS output as the DE/RE signal."""

    def __init__(self, channel: SerialChannel, active_high: bool = True) -> None:
        self._channel = channel
        self._active_high = active_high

    def assert_line(self) -> None:
        self._channel.set_rts(self._active_high)

    def deassert_line(self) -> None:
        self._channel.set_rts(not self._active_high)


class GpioDirectionLine:
    """Drives a Raspberry Pi GPIO pin (BCM numbering) as the DE/RE signal.

    ``RPi.GPIO`` is imported on :meth:`open`, so the rest of the package
    works on hosts without it.
    """

    def __init__(self, pin: int) -> None:
        self._pin = pin
        self._gpio = None

    @property
    def pin(self) -> int:
        return self._pin

    def open(self) -> None:
        """Configure the pin as an output, starting in receive mode."""
        import RPi.GPIO as GPIO

        GPIO.setmode(GPIO.BCM)
        GPIO.setup(self._pin, GPIO.OUT, initial=GPIO.LOW)
        self._gpio = GPIO
        logger.info("Direction control on GPIO%d", self._pin)

    def close(self) -> None:
        if self._gpio is None:
            return
        self._gpio.output(self._pin, self._gpio.LOW)
        self._gpio.cleanup(self._pin)
        self._gpio = None

    def _require_gpio(self):
        if self._gpio is None:
            raise ConnectionError(f"GPIO{self._pin} has not been opened")
        return self._gpio

    def assert_line(self) -> None:
        gpio = self._require_gpio()
        gpio.output(self._pin, gpio.HIGH)

    def deassert_line(self) -> None:
        gpio = self._require_gpio()
        gpio.output(self._pin, gpio.LOW)
