"""Protocol layer: frame codec, command builders, and status decoding."""

from .framing import CommandFrame, StatusFrame, encode_command, decode_status
from .commands import ControlBits, Direction, build_turn_on, build_turn_off, build_set_speed
from .parser import FrequencyReading, Indicator, decode_frequency, to_rpm
