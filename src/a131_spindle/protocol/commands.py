"""Control bits and high-level command builders.

The inverter accepts a single kind of control frame; what it does is
decided by the D3 control bits and the D1:D2 frequency payload.
"""

from __future__ import annotations

from enum import Enum, IntFlag

from .framing import CommandFrame, encode_command

MAX_FREQUENCY = 0xFFFF  # 0.01 Hz units, limited by the 16-bit payload
RPM_PER_HZ = 60


class ControlBits(IntFlag):
    """D3 control byte: mirrors the keys on the drive's front panel."""

    NONE = 0
    RUN = 1 << 0
    STOP = 1 << 1
    UP = 1 << 2
    LEFT = 1 << 3
    RIGHT = 1 << 4
    DOWN = 1 << 5
    SET = 1 << 6
    DIRECTION = 1 << 7


class Direction(Enum):
    """Rotation direction selected when the spindle is started."""

    FORWARD = "forward"
    REVERSE = "reverse"

    @property
    def control_bits(self) -> ControlBits:
        return ControlBits.DIRECTION if self is Direction.REVERSE else ControlBits.NONE


def rpm_to_frequency(target_rpm: int) -> int:
    """Convert RPM to the drive's 0.01 Hz payload.

    The whole-Hz value is truncated before scaling, so 1559 RPM and
    1500 RPM both map to 25.00 Hz. Speeds between 1 and 59 RPM would
    silently become 0 Hz and are rejected instead.

    Raises:
        ValueError: For negative speeds, 1-59 RPM, or speeds beyond the
            16-bit frequency payload.
    """
    if target_rpm < 0:
        raise ValueError(f"Target RPM must be non-negative, got {target_rpm}")
    if 0 < target_rpm < RPM_PER_HZ:
        raise ValueError(
            f"Target RPM {target_rpm} is below {RPM_PER_HZ} RPM and would "
            f"truncate to 0 Hz; use 0 to command zero speed"
        )
    frequency = (target_rpm // RPM_PER_HZ) * 100
    if frequency > MAX_FREQUENCY:
        raise ValueError(
            f"Target RPM {target_rpm} exceeds the maximum frequency payload "
            f"({MAX_FREQUENCY / 100:.2f} Hz)"
        )
    return frequency


def run_bits(running: bool, direction: Direction = Direction.FORWARD) -> ControlBits:
    """Control bits for a start command in ``direction``."""
    if not running:
        return ControlBits.NONE
    return ControlBits.RUN | direction.control_bits


def speed_bits(running: bool) -> ControlBits:
    """Control bits to send with a frequency change.

    The direction bit is a panel key press, not a level, so it is left
    out here: repeating it on every speed change could flip rotation.
    """
    return ControlBits.RUN if running else ControlBits.NONE


def build_command(frequency: int, control: ControlBits | int) -> CommandFrame:
    """Build a command frame from a frequency payload and control bits."""
    return encode_command(frequency, int(control))


def build_turn_on(direction: Direction = Direction.FORWARD) -> CommandFrame:
    """Build the RUN command, with the direction bit set for reverse."""
    return build_command(0, run_bits(True, direction))


def build_turn_off() -> CommandFrame:
    """Build the STOP command."""
    return build_command(0, ControlBits.STOP)


def build_set_speed(
    target_rpm: int,
    control: ControlBits | int = ControlBits.NONE,
) -> CommandFrame:
    """Build a frequency command for ``target_rpm``.

    Args:
        target_rpm: Desired spindle speed.
        control: D3 bits to send alongside the frequency. Pass
            :func:`speed_bits` so the speed change does not start or
            stop the spindle.
    """
    return build_command(rpm_to_frequency(target_rpm), control)
