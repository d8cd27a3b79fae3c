"""Serial connection to the inverter's RS-485 adapter.

Wraps a ``pyserial`` port behind the small byte-channel interface the
half-duplex line needs: ``write``, ``readable`` and ``read_byte``. The
A131 talks 9600 baud, 8 data bits, no parity, 1 stop bit.
"""

from __future__ import annotations

import logging

import serial

from ..exceptions import DriveIoError

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUDRATE = 9600
BITS_PER_BYTE = 10  # start + 8 data + stop


class SerialChannel:
    """Manages the serial port used to reach the inverter.

    Usage::

        channel = SerialChannel("/dev/ttyUSB0")
        channel.open()
        channel.write(frame_bytes)
        byte = channel.read_byte(timeout=0.5)
        channel.close()
    """

    def __init__(self, port: str = DEFAULT_PORT, baudrate: int = DEFAULT_BAUDRATE) -> None:
        self._port_name = port
        self._baudrate = baudrate
        self._port: serial.Serial | None = None

    @property
    def connected(self) -> bool:
        return self._port is not None and self._port.is_open

    @property
    def port(self) -> str:
        return self._port_name

    @property
    def baudrate(self) -> int:
        return self._baudrate

    @property
    def byte_time_ms(self) -> float:
        """Time on the wire for one 8N1 character, in milliseconds."""
        return BITS_PER_BYTE * 1000 / self._baudrate

    def open(self) -> None:
        """Open the port with the inverter's fixed 8N1 framing.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        if self.connected:
            return
        port = serial.Serial()
        port.port = self._port_name
        port.baudrate = self._baudrate
        port.bytesize = serial.EIGHTBITS
        port.parity = serial.PARITY_NONE
        port.stopbits = serial.STOPBITS_ONE
        port.xonxoff = False
        port.rtscts = False
        port.dsrdtr = False
        port.timeout = None
        try:
            port.open()
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not open serial port {self._port_name} "
                f"at {self._baudrate} baud: {e}"
            ) from e
        self._port = port
        logger.info("Opened %s at %d baud", self._port_name, self._baudrate)

    def close(self) -> None:
        """Close the serial port."""
        if self._port is None:
            return
        try:
            self._port.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._port_name, e)
        finally:
            self._port = None
            logger.info("Closed %s", self._port_name)

    def _require_port(self) -> serial.Serial:
        if not self.connected:
            raise ConnectionError(f"Serial port {self._port_name} is not open")
        return self._port

    def write(self, data: bytes) -> int:
        """Write ``data`` and wait for it to leave the OS buffer.

        Returns:
            Number of bytes accepted by the port.

        Raises:
            DriveIoError: If the port reports an error.
        """
        port = self._require_port()
        try:
            written = port.write(data)
            port.flush()
        except serial.SerialException as e:
            raise DriveIoError(f"Write to {self._port_name} failed: {e}") from e
        return len(data) if written is None else written

    def readable(self) -> bool:
        """Whether at least one received byte is waiting."""
        port = self._require_port()
        try:
            return port.in_waiting > 0
        except serial.SerialException as e:
            raise DriveIoError(f"Polling {self._port_name} failed: {e}") from e

    def read_byte(self, timeout: float | None = None) -> int | None:
        """Read one byte, blocking up to ``timeout`` seconds.

        Returns:
            The byte value, or ``None`` if the timeout expired.
        """
        port = self._require_port()
        try:
            if port.timeout != timeout:
                port.timeout = timeout
            data = port.read(1)
        except serial.SerialException as e:
            raise DriveIoError(f"Read from {self._port_name} failed: {e}") from e
        return data[0] if data else None

    def set_rts(self, level: bool) -> None:
        """Drive the RTS modem line, often wired to the transceiver's DE/RE."""
        self._require_port().rts = level
