# ZE29A/ze29a_transport.py
import time, serial
from typing import Optional

from .ze29a_errors import NotConnected, TransportError


class SerialTransport:
    """
    Thin byte-stream wrapper around a `serial.Serial` port.

    The protocol layer only needs five things from a transport:
    `write`, `flush` (drain TX), `available`, `read_byte(timeout)` and
    `discard_input`. Tests substitute any object with the same methods.
    """

    READ_TIMEOUT_S  = 0.1   # Same as FrameReader.READ_SLICE_S; steady reads keep this value.
    WRITE_TIMEOUT_S = 1.0   # A 9-byte frame at 9600 bps takes ~10 ms; anything longer is a fault.
    OPEN_SETTLE_S   = 0.1   # Let the USB-UART bridge settle after open.

    def __init__(self, port: str, baud: int = 9600):
        self.port = port
        self.baud = baud
        self.serial_port: Optional[serial.Serial] = None

    @property
    def is_open(self) -> bool:
        return bool(self.serial_port and self.serial_port.is_open)

    def open(self) -> None:
        """Open the port at 8N1 and clear both buffers. Raises serial.SerialException."""
        self.serial_port = serial.Serial(
            self.port,
            self.baud,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=self.READ_TIMEOUT_S,
            write_timeout=self.WRITE_TIMEOUT_S,
        )
        time.sleep(self.OPEN_SETTLE_S)
        self.serial_port.reset_input_buffer()
        self.serial_port.reset_output_buffer()

    def close(self) -> None:
        if self.serial_port is not None:
            try:
                self.serial_port.close()
            finally:
                self.serial_port = None

    def write(self, data: bytes) -> int:
        port = self._require_open()
        try:
            return port.write(data)
        except serial.SerialException as exc:  # includes SerialTimeoutException
            raise TransportError(f"Write to {self.port} failed: {exc}") from exc

    def flush(self) -> None:
        """Block until every written byte has left the UART."""
        port = self._require_open()
        try:
            port.flush()
        except serial.SerialException as exc:
            raise TransportError(f"Flush of {self.port} failed: {exc}") from exc

    def available(self) -> int:
        return self._require_open().in_waiting

    def read_byte(self, timeout: float) -> Optional[int]:
        """Block up to `timeout` seconds for one byte; None if nothing arrived."""
        port = self._require_open()
        timeout = max(0.0, timeout)
        # Assigning the timeout reconfigures the port (tcsetattr on POSIX).
        if port.timeout != timeout:
            port.timeout = timeout
        chunk = port.read(1)
        return chunk[0] if chunk else None

    def discard_input(self) -> int:
        """Drop whatever is sitting in the RX buffer; returns how many bytes were dropped."""
        port = self._require_open()
        stale = port.in_waiting
        port.reset_input_buffer()
        return stale

    def _require_open(self) -> serial.Serial:
        if not self.is_open:
            raise NotConnected(f"Serial port {self.port} is not open")
        return self.serial_port
