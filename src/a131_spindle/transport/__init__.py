"""Transport layer: serial channel, direction control, half-duplex line."""

from .half_duplex import HalfDuplexLine
from .serial_channel import SerialChannel
from .direction import GpioDirectionLine, RtsDirectionLine
