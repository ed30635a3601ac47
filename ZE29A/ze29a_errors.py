# ZE29A/ze29a_errors.py
"""Exceptions raised by the ZE29A protocol layer. Nothing here retries."""
from __future__ import annotations


class SensorProtocolError(Exception):
    """Base class for every failure of a request/response exchange."""


class NotConnected(SensorProtocolError):
    """An exchange was attempted while the serial port is closed."""


class TransportError(SensorProtocolError):
    """The serial port failed while writing or draining a request."""


class MalformedError(SensorProtocolError):
    """Wrong length, start marker or device address."""

    def __init__(self, message: str, raw: bytes = b""):
        super().__init__(message)
        self.raw = bytes(raw)


class ChecksumError(SensorProtocolError):
    def __init__(self, expected: int, actual: int, raw: bytes = b""):
        super().__init__(f"Checksum mismatch: expected 0x{expected:02X}, got 0x{actual:02X}")
        self.expected = expected
        self.actual = actual
        self.raw = bytes(raw)


class NoResponse(SensorProtocolError):
    """Deadline elapsed before a start marker was seen."""

    def __init__(self, timeout_s: float):
        super().__init__(f"No response within {timeout_s:.3f} s")
        self.timeout_s = timeout_s


class PartialResponse(SensorProtocolError):
    """Deadline elapsed with 1-8 bytes of a frame accumulated."""

    def __init__(self, received: bytes, timeout_s: float):
        self.received = bytes(received)
        self.timeout_s = timeout_s
        super().__init__(
            f"Partial response: {len(self.received)} of 9 bytes within {timeout_s:.3f} s "
            f"({self.received.hex(' ').upper()})"
        )

    @property
    def bytes_received(self) -> int:
        return len(self.received)


class UnexpectedOpcode(SensorProtocolError):
    def __init__(self, expected: int, actual: int):
        super().__init__(f"Reply opcode 0x{actual:02X} does not match request 0x{expected:02X}")
        self.expected = expected
        self.actual = actual


class InvalidStateTransition(SensorProtocolError):
    """The command is not legal in the recorded sensor state. No frame was sent."""

    def __init__(self, state, operation: str):
        super().__init__(f"{operation} not allowed while sensor is {state}")
        self.state = state
        self.operation = operation


class OutOfRange(SensorProtocolError, ValueError):
    """An argument is outside the range the device accepts. No frame was sent."""

    def __init__(self, name: str, value, low: int, high: int):
        super().__init__(f"{name} must be {low}-{high}, got {value!r}")
        self.name = name
        self.value = value
        self.low = low
        self.high = high
