"""Host-side settings for reaching the inverter.

Defaults match the drive's documented setup: 9600 baud 8N1, with
parameters PD001=2 and PD002=2 so that run commands and the operating
frequency are taken from RS-485, and PD023=1 to allow reverse rotation.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .protocol.commands import Direction
from .transport.serial_channel import BITS_PER_BYTE, DEFAULT_BAUDRATE, DEFAULT_PORT

READ_TIMEOUT_S = 1.0
ENV_PREFIX = "A131_"


class SpindleConfig(BaseSettings):
    """Connection and behaviour settings for one spindle.

    Unset fields are read from ``A131_*`` environment variables
    (``A131_PORT``, ``A131_BAUDRATE``, ``A131_DIRECTION_LINE``,
    ``A131_GPIO_PIN``, ``A131_REVERSE``, ``A131_READ_TIMEOUT``), then
    fall back to the defaults. Invalid values raise
    ``pydantic.ValidationError``, a ``ValueError``.
    """

    port: str = DEFAULT_PORT
    baudrate: int = Field(default=DEFAULT_BAUDRATE, gt=0)
    direction_line: Literal["rts", "gpio"] = "rts"
    gpio_pin: Optional[int] = Field(default=None, ge=0)
    reverse: bool = False
    read_timeout: float = Field(default=READ_TIMEOUT_S, gt=0)

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
    )

    @field_validator("direction_line", mode="before")
    @classmethod
    def _normalise_direction_line(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _require_gpio_pin(self) -> SpindleConfig:
        if self.direction_line == "gpio" and self.gpio_pin is None:
            raise ValueError("A GPIO pin is required when direction_line is 'gpio'")
        return self

    @property
    def byte_time_ms(self) -> float:
        """Wire time of one 8N1 character at the configured baud rate."""
        return BITS_PER_BYTE * 1000 / self.baudrate

    @property
    def direction(self) -> Direction:
        return Direction.REVERSE if self.reverse else Direction.FORWARD

    @classmethod
    def from_env(cls, **overrides) -> SpindleConfig:
        """Load settings from the environment, with explicit overrides.

        Overrides that are ``None`` are ignored. The rest take priority
        over ``A131_*`` variables, and validation runs on the merged result.
        """
        return cls(**{k: v for k, v in overrides.items() if v is not None})
