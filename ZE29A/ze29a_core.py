# ZE29A/ze29a_core.py
import time, serial
from typing import Callable, Optional

from logger import get_logger

from .ze29a_errors import SensorProtocolError, NotConnected, UnexpectedOpcode, InvalidStateTransition, OutOfRange
from .ze29a_frame import (
    Frame, encode, validate, hex_bytes,
    CMD_QUERY_STATE, CMD_READ_RESULT, CMD_CHANGE_STATE,
    CMD_READ_BLOW_TIME, CMD_WRITE_BLOW_TIME, CMD_QUERY_THRESHOLDS, OPCODE_NAMES,
)
from .ze29a_reader import FrameReader
from .ze29a_state import (
    SensorState, SensorStateModel, AlarmLevel, MeasurementResult, ThresholdPair,
)
from .ze29a_transport import SerialTransport

logger = get_logger(__name__)


class ZE29ASensor:
    """
    Synchronous client for the ZE29A breath-alcohol module over UART.

    Design notes:
    - One request, one reply. `exchange()` does not return until the reply is
      validated or a bounded wait has failed, so two exchanges never overlap.
    - Failures are raised as `SensorProtocolError` subclasses and never retried
      here; polling/retry policy belongs to the caller.
    - The only state kept between calls is the last device-confirmed
      `SensorState`, updated exclusively by `query_state()`.
    - `on_status` / `on_error` callbacks mirror the log for UI/CLI hosts.
    """

    ACK = 0x01  # Data[0] of CHANGE_STATE / WRITE_BLOW_TIME replies when accepted.

    BLOW_TIME_MIN_S = 1
    BLOW_TIME_MAX_S = 10

    # === IO / protocol timings ===
    RESPONSE_TIMEOUT_S  = 3.0   # Whole seek + accumulate budget for one reply.
    SETTLE_S            = 0.5   # Device processing latency before a reply is expected.
    CONFIG_SETTLE_S     = 0.8   # State-change / blow-time commands take longer to process.
    PROBE_WAIT_S        = 0.1   # probe(): time to let reply bytes land before counting them.
    RESET_PAUSE_S       = 1.0   # reset_connection(): pause after close and after reopen.

    def __init__(self, port: str = "", baud: int = 9600, *,
                 transport=None,
                 response_timeout_s: float = RESPONSE_TIMEOUT_S,
                 settle_s: float = SETTLE_S,
                 config_settle_s: float = CONFIG_SETTLE_S):
        """
        Parameters
        ----------
        port : str
            OS serial device ('/dev/ttyUSB0', 'COM5'). Ignored when `transport` is given.
        baud : int, default 9600
            The module only talks 9600 8N1.
        transport : object, optional
            Anything with write/flush/available/read_byte/discard_input. Defaults
            to a pyserial-backed SerialTransport.
        response_timeout_s, settle_s, config_settle_s : float
            Override the class timings (tests pass zeros and short deadlines).
        """
        self.port = port
        self.baud = baud
        self.transport = transport if transport is not None else SerialTransport(port, baud)
        self.reader = FrameReader(self.transport)

        self.response_timeout_s = response_timeout_s
        self.settle_s = settle_s
        self.config_settle_s = config_settle_s

        self.state_model = SensorStateModel()

        self.on_status: Optional[Callable[[str], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None

    @classmethod
    def from_config(cls, cfg) -> "ZE29ASensor":
        """Build a sensor from a SensorConfig."""
        return cls(
            cfg.port_name,
            cfg.baud_rate,
            response_timeout_s=cfg.response_timeout_s,
            settle_s=cfg.settle_s,
            config_settle_s=cfg.change_state_settle_s,
        )

    # ---------- Connection ----------
    def connect(self) -> bool:
        """Open the serial port. Returns False (and reports) if it cannot be opened."""
        try:
            self.transport.open()
        except (serial.SerialException, ValueError) as exc:
            self._error(f"Error connecting to {self.port}: {exc}")
            return False
        self._status(f"Connected to {self.port} @ {self.baud} bps")
        return True

    def disconnect(self) -> None:
        try:
            self.transport.close()
            self._status("Disconnected.")
        except serial.SerialException as exc:
            self._error(f"Disconnect error: {exc}")

    def reset_connection(self) -> bool:
        """Close, pause, reopen, pause and discard stale input."""
        self._status("Resetting serial connection...")
        self.transport.close()
        time.sleep(self.RESET_PAUSE_S)
        if not self.connect():
            return False
        time.sleep(self.RESET_PAUSE_S)
        self.transport.discard_input()
        return True

    @property
    def state(self) -> SensorState:
        return self.state_model.state

    @property
    def is_result_available(self) -> bool:
        return self.state_model.is_result_available

    # ---------- Primitive ----------
    def exchange(self, opcode: int, data: bytes = b"", settle_s: Optional[float] = None) -> Frame:
        """
        One full request/response round.

        1) discard stale RX bytes
        2) write the frame and drain TX
        3) wait the settling delay
        4) read one candidate frame within the response deadline
        5) validate start/address/checksum
        6) check the reply echoes our opcode

        Every failure propagates unchanged to the caller.
        """
        request = encode(opcode, data)
        name = OPCODE_NAMES.get(opcode, f"0x{opcode:02X}")

        stale = self.transport.discard_input()
        if stale:
            logger.debug("Discarded %d stale byte(s) before %s", stale, name)

        logger.debug("TX %s: %s", name, hex_bytes(request))
        self.transport.write(request)
        self.transport.flush()

        time.sleep(self.settle_s if settle_s is None else settle_s)

        try:
            raw = self.reader.read_frame(self.response_timeout_s)
            if self.reader.discarded:
                logger.debug("Skipped %d byte(s) before start marker", self.reader.discarded)
            logger.debug("RX %s: %s", name, hex_bytes(raw))
            frame = validate(raw)
            if frame.opcode != opcode:
                raise UnexpectedOpcode(opcode, frame.opcode)
        except SensorProtocolError as exc:
            logger.warning("%s exchange failed: %s", name, exc)
            raise
        return frame

    # ---------- Features ----------
    def query_state(self) -> SensorState:
        """Ask the device for its status and record it."""
        frame = self.exchange(CMD_QUERY_STATE)
        previous = self.state_model.key
        state = self.state_model.record(frame.data[0])
        if self.state_model.key != previous:
            self._status(f"State: {self.state_model.describe()}")
        return state

    def read_result(self) -> MeasurementResult:
        """
        Fetch the finished measurement. Only legal while the recorded state is
        RESULT_READY; otherwise raises InvalidStateTransition without I/O.
        A successful read marks the current reading as consumed.
        """
        if not self.state_model.is_result_available:
            raise InvalidStateTransition(self.state_model.state, "ReadResult")
        frame = self.exchange(CMD_READ_RESULT)
        concentration = int.from_bytes(frame.data[0:2], "big")
        alarm_code = frame.data[4]
        self.state_model.mark_result_consumed()
        return MeasurementResult(
            concentration=concentration,
            alarm=AlarmLevel.from_code(alarm_code),
            alarm_code=alarm_code,
        )

    def begin_test(self) -> bool:
        """
        Ask the device to start preheating. Gated on the recorded state
        (IDLE or RESULT_READY); returns the device's accept/reject answer.
        The device then walks WAITING_FOR_BLOW -> BLOWING -> CALCULATING ->
        RESULT_READY on its own; observe it with query_state().
        """
        self.state_model.require_begin_test()
        frame = self.exchange(CMD_CHANGE_STATE, bytes([SensorState.PREHEATING]),
                              settle_s=self.config_settle_s)
        accepted = frame.data[0] == self.ACK
        if accepted:
            self._status("Preheating started.")
        else:
            self._status(f"Change to preheating rejected (0x{frame.data[0]:02X}).")
        return accepted

    def query_thresholds(self) -> ThresholdPair:
        frame = self.exchange(CMD_QUERY_THRESHOLDS)
        return ThresholdPair(drinking=frame.data[0], drunk=frame.data[1])

    def get_blow_time(self) -> int:
        """Configured blow duration in seconds."""
        frame = self.exchange(CMD_READ_BLOW_TIME, settle_s=self.config_settle_s)
        return frame.data[0]

    def set_blow_time(self, seconds: int) -> bool:
        """
        Write the blow duration (1-10 s). Out-of-range values raise OutOfRange
        before any I/O. A device-side rejection is a normal False, not an error.
        """
        if (not isinstance(seconds, int) or isinstance(seconds, bool)
                or not self.BLOW_TIME_MIN_S <= seconds <= self.BLOW_TIME_MAX_S):
            raise OutOfRange("Blow time", seconds, self.BLOW_TIME_MIN_S, self.BLOW_TIME_MAX_S)
        frame = self.exchange(CMD_WRITE_BLOW_TIME, bytes([seconds]), settle_s=self.config_settle_s)
        accepted = frame.data[0] == self.ACK
        if accepted:
            self._status(f"Blow time set to {seconds} s.")
        else:
            self._status("Blow time change rejected by device.")
        return accepted

    # ---------- Diagnostics ----------
    def probe(self) -> int:
        """
        Send a state query without reading the reply and report how many
        bytes the device buffered after a short wait. The bytes are left in
        place; the next exchange discards them.
        """
        request = encode(CMD_QUERY_STATE)
        self.transport.discard_input()
        logger.debug("TX probe: %s", hex_bytes(request))
        self.transport.write(request)
        self.transport.flush()
        time.sleep(self.PROBE_WAIT_S)
        waiting = self.transport.available()
        self._status(f"Bytes available after probe: {waiting}")
        return waiting

    def wait_for_state(self, target: SensorState, timeout_s: float, interval_s: float = 0.5) -> bool:
        """
        Poll query_state() until `target` is reported or `timeout_s` elapses.
        Failed exchanges count as "not yet".
        """
        deadline = time.monotonic() + timeout_s
        while True:
            try:
                if self.query_state() is target:
                    return True
            except NotConnected:
                raise
            except SensorProtocolError as exc:
                logger.info("State query during wait failed: %s", exc)
            if time.monotonic() + interval_s > deadline:
                break
            time.sleep(interval_s)
        self._status(f"Timed out waiting for state {target.name}.")
        return False

    # --- small helpers ---
    def _status(self, msg: str):
        logger.info(msg)
        if self.on_status:
            self.on_status(msg)

    def _error(self, msg: str):
        logger.error(msg)
        if self.on_error:
            self.on_error(msg)
