"""Control A131-family spindle inverters over half-duplex RS-485."""

from .driver import SpindleDriver, SpindleState
from .exceptions import (
    A131Error,
    DriveError,
    DriveIoError,
    DriveTimeout,
    FrameError,
    FrameMalformed,
    FrameTruncated,
)

__version__ = "0.1.0"
