"""Exception types raised by the protocol, transport and driver layers."""

from __future__ import annotations


class A131Error(Exception):
    """Base class for all errors raised by this package."""


class FrameError(A131Error):
    """A frame could not be decoded."""


class FrameTruncated(FrameError):
    """Fewer bytes were available than the frame requires.

    ``received`` holds whatever partial data arrived, so callers can tell
    a short read apart from a corrupted one.
    """

    def __init__(self, message: str, received: bytes = b"") -> None:
        super().__init__(message)
        self.received = bytes(received)


class FrameMalformed(FrameError):
    """Length, header, terminator or integrity bytes do not match."""


class DriveError(A131Error):
    """A spindle operation failed."""


class DriveIoError(DriveError, IOError):
    """The serial channel failed or accepted fewer bytes than requested."""


class DriveTimeout(DriveError, TimeoutError):
    """No complete status frame arrived within the read timeout."""

    def __init__(self, message: str, received: bytes = b"") -> None:
        super().__init__(message)
        self.received = bytes(received)
