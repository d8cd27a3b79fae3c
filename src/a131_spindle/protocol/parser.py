"""Interpretation of the inverter's status frame."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag

from .commands import RPM_PER_HZ, Direction
from .framing import StatusFrame

RPM_REPORT_FORMAT = "Current RPM: {rpm}\n"


class Indicator(IntFlag):
    """D6 indicator bits, matching the LEDs on the drive's panel."""

    NONE = 0
    FAULT = 1 << 0
    CLOCKWISE = 1 << 1
    ANTICLOCKWISE = 1 << 2
    ANALOG_INPUT = 1 << 3
    MULTI_SEGMENT = 1 << 4
    PANEL = 1 << 5
    EXTERNAL_SIGNAL = 1 << 6
    RESERVED = 1 << 7


@dataclass(frozen=True)
class FrequencyReading:
    """Displayed output frequency, exact, in 0.01 Hz units."""

    hz_centi: int

    @property
    def hz(self) -> float:
        return self.hz_centi / 100

    @property
    def rpm(self) -> int:
        return to_rpm(self)

    def __repr__(self) -> str:
        return f"FrequencyReading({self.hz_centi // 100}.{self.hz_centi % 100:02d} Hz)"


@dataclass(frozen=True)
class StatusReport:
    """A decoded status frame: frequency plus panel indicators."""

    reading: FrequencyReading
    indicators: Indicator

    @property
    def fault(self) -> bool:
        return bool(self.indicators & Indicator.FAULT)

    @property
    def direction(self) -> Direction | None:
        """Reported rotation, or ``None`` if neither LED is lit."""
        if self.indicators & Indicator.CLOCKWISE:
            return Direction.FORWARD
        if self.indicators & Indicator.ANTICLOCKWISE:
            return Direction.REVERSE
        return None

    def to_dict(self) -> dict:
        return {
            "hz": self.reading.hz,
            "hz_centi": self.reading.hz_centi,
            "rpm": self.reading.rpm,
            "fault": self.fault,
            "direction": self.direction.value if self.direction else None,
            "indicators": [flag.name.lower() for flag in Indicator
                           if flag and flag in self.indicators],
        }


def decode_frequency(frame: StatusFrame) -> FrequencyReading:
    """Read the display digits ``D1 D2 D3 . D4 D5`` as a frequency."""
    hz_centi = 0
    for digit in frame.digits:
        hz_centi = hz_centi * 10 + digit
    return FrequencyReading(hz_centi=hz_centi)


def decode_indicators(frame: StatusFrame) -> Indicator:
    return Indicator(frame.indicators)


def decode_report(frame: StatusFrame) -> StatusReport:
    return StatusReport(
        reading=decode_frequency(frame),
        indicators=decode_indicators(frame),
    )


def to_rpm(reading: FrequencyReading | int) -> int:
    """Convert a frequency to RPM, truncating to whole Hz first.

    This is a truncating conversion, not a rounding one: 25.99 Hz gives
    1500 RPM. Use ``hz_centi`` directly when fractions matter.

    Args:
        reading: A :class:`FrequencyReading` or a raw 0.01 Hz value.
    """
    hz_centi = reading.hz_centi if isinstance(reading, FrequencyReading) else reading
    return (hz_centi // 100) * RPM_PER_HZ


def format_rpm_report(rpm: int) -> str:
    """Format the line handed to the reporting sink."""
    return RPM_REPORT_FORMAT.format(rpm=rpm)
