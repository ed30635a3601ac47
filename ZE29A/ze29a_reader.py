# ZE29A/ze29a_reader.py
import time
from typing import Callable

from .ze29a_errors import NoResponse, PartialResponse
from .ze29a_frame import FRAME_LEN, START_BYTE


class FrameReader:
    """
    Assemble one 9-byte candidate frame from a byte stream.

    The stream has no delimiter other than the 0xFF start marker, so the reader
    runs a two-state scan:

    * seeking      - drop every byte until 0xFF shows up; it becomes buffer[0].
    * accumulating - append whatever follows (0xFF included, it is valid data)
                     until 9 bytes are buffered.

    One deadline bounds the whole seek + accumulate pass no matter how much
    garbage precedes the marker. The candidate is returned unchecked; checksum
    and address validation belong to the codec.
    """

    DEFAULT_DEADLINE_S = 3.0
    READ_SLICE_S = 0.1   # Fixed per-byte wait; the deadline loop bounds the total.

    def __init__(self, transport, clock: Callable[[], float] = time.monotonic):
        self.transport = transport
        self._clock = clock
        # Bytes thrown away while seeking during the last read; handy when debugging wiring.
        self.discarded = 0

    def read_frame(self, deadline_s: float = DEFAULT_DEADLINE_S) -> bytes:
        """
        Returns
        -------
        bytes
            Exactly 9 bytes starting with 0xFF.

        Raises
        ------
        NoResponse
            Deadline elapsed before any start marker.
        PartialResponse
            Deadline elapsed with 1-8 bytes buffered; the bytes are attached.
        """
        deadline = self._clock() + deadline_s
        buffer = bytearray()
        self.discarded = 0

        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                break

            byte = self.transport.read_byte(min(remaining, self.READ_SLICE_S))
            if byte is None:
                continue

            if not buffer:
                if byte == START_BYTE:
                    buffer.append(byte)
                else:
                    self.discarded += 1
                continue

            buffer.append(byte)
            if len(buffer) == FRAME_LEN:
                return bytes(buffer)

        if not buffer:
            raise NoResponse(deadline_s)
        raise PartialResponse(bytes(buffer), deadline_s)
