# ZE29A/ze29a_frame.py
"""
Frame codec for the Winsen ZE29A-C2H5OH breath-alcohol module.

Every frame, in both directions, is exactly 9 bytes:

    +-------+---------+--------+------------------+----------+
    | Start | Address | Opcode |   Data (5 B)     | Checksum |
    | 0xFF  |  0x01   | 1 byte | command-specific |  1 byte  |
    +-------+---------+--------+------------------+----------+

Checksum = (0 - sum(bytes[1..7])) & 0xFF, i.e. the additive checksum that
makes address..checksum sum to zero modulo 256.
"""
from __future__ import annotations

from dataclasses import dataclass

from .ze29a_errors import ChecksumError, MalformedError

FRAME_LEN = 9
DATA_LEN = 5

START_BYTE = 0xFF
DEVICE_ADDRESS = 0x01

# === Opcodes (host -> device, echoed device -> host) ===
CMD_QUERY_STATE      = 0x85  # Data[0] of the reply = state code.
CMD_READ_RESULT      = 0x86  # Data[0..1] = concentration (BE), Data[4] = alarm.
CMD_CHANGE_STATE     = 0x87  # Request data[0] = target state; reply data[0] = 1 on accept.
CMD_READ_BLOW_TIME   = 0x88  # Reply data[0] = seconds.
CMD_WRITE_BLOW_TIME  = 0x89  # Request data[0] = seconds; reply data[0] = 1 on accept.
CMD_QUERY_THRESHOLDS = 0x90  # Reply data[0] = drinking, data[1] = drunk.

OPCODE_NAMES = {
    CMD_QUERY_STATE: "QUERY_STATE",
    CMD_READ_RESULT: "READ_RESULT",
    CMD_CHANGE_STATE: "CHANGE_STATE",
    CMD_READ_BLOW_TIME: "READ_BLOW_TIME",
    CMD_WRITE_BLOW_TIME: "WRITE_BLOW_TIME",
    CMD_QUERY_THRESHOLDS: "QUERY_THRESHOLDS",
}


@dataclass(frozen=True)
class Frame:
    """A decoded 9-byte frame."""

    opcode: int
    data: bytes
    address: int = DEVICE_ADDRESS
    start: int = START_BYTE
    checksum: int = 0

    def to_bytes(self) -> bytes:
        return bytes([self.start, self.address, self.opcode]) + self.data + bytes([self.checksum])

    def __repr__(self) -> str:
        name = OPCODE_NAMES.get(self.opcode, "UNKNOWN")
        return f"Frame(opcode=0x{self.opcode:02X} {name}, data={self.data.hex(' ')})"


def calculate_checksum(frame: bytes) -> int:
    """Checksum over bytes 1..7 (address through last data byte)."""
    return (0 - sum(frame[1:8])) & 0xFF


def encode(opcode: int, data: bytes = b"") -> bytes:
    """
    Build a request frame for `opcode`.

    `data` may be shorter than 5 bytes; it is zero-padded. Longer payloads
    and out-of-range opcodes are a programming error and raise ValueError.
    """
    if not 0 <= opcode <= 0xFF:
        raise ValueError(f"Opcode must fit in one byte, got {opcode!r}")
    data = bytes(data)
    if len(data) > DATA_LEN:
        raise ValueError(f"Payload is at most {DATA_LEN} bytes, got {len(data)}")
    body = bytearray([START_BYTE, DEVICE_ADDRESS, opcode]) + data.ljust(DATA_LEN, b"\x00")
    body.append(calculate_checksum(body))
    return bytes(body)


def validate(raw: bytes) -> Frame:
    """
    Check a candidate frame and decode it.

    Raises MalformedError on a wrong length, start marker or address and
    ChecksumError when byte 8 disagrees with the computed checksum.
    """
    raw = bytes(raw)
    if len(raw) != FRAME_LEN:
        raise MalformedError(f"Frame must be {FRAME_LEN} bytes, got {len(raw)}", raw)
    if raw[0] != START_BYTE:
        raise MalformedError(f"Bad start marker 0x{raw[0]:02X}", raw)
    # Checksum first: any single-bit error in bytes 1-8 surfaces as ChecksumError.
    expected = calculate_checksum(raw)
    if raw[8] != expected:
        raise ChecksumError(expected, raw[8], raw)
    if raw[1] != DEVICE_ADDRESS:
        raise MalformedError(f"Unexpected address 0x{raw[1]:02X}", raw)

    return Frame(opcode=raw[2], data=raw[3:8], address=raw[1], start=raw[0], checksum=raw[8])


def hex_bytes(data: bytes) -> str:
    """'FF 01 85 ...' for logs and console output."""
    return bytes(data).hex(" ").upper()
