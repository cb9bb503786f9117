from __future__ import annotations


class GbootError(Exception):
    pass


class InputError(GbootError):
    """The firmware image cannot be sent; raised before any network activity."""


class StorageError(InputError):
    """The firmware file could not be opened."""


class ReadError(InputError):
    """Reading the firmware file failed before end of stream."""


class ImageTooLarge(InputError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"firmware image of {size} bytes exceeds the {limit} byte size header")
        self.size = size
        self.limit = limit


class ProtocolError(GbootError):
    """The peer answered with something other than the expected token."""

    def __init__(self, expected: bytes, received: bytes):
        super().__init__(f"expected {expected!r}, got {received!r}")
        self.expected = expected
        self.received = received


class ConnectionClosed(GbootError):
    """The peer closed the stream before sending the expected bytes."""

    def __init__(self, wanted: int, received: bytes):
        super().__init__(f"connection closed after {len(received)} of {wanted} bytes")
        self.wanted = wanted
        self.received = received


class RetriesExhausted(GbootError):
    def __init__(self, attempts: int, last_error: OSError):
        super().__init__(f"gave up after {attempts} connection attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error
