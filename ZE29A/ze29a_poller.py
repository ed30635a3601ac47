# ZE29A/ze29a_poller.py
import logging, threading, time
from dataclasses import dataclass
from typing import Callable, Optional

from logger import get_logger, log_json

from .ze29a_core import ZE29ASensor
from .ze29a_errors import SensorProtocolError
from .ze29a_state import SensorState, MeasurementResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class PollOutcome:
    """What one tick observed. `state` is None when the state query failed."""

    state: Optional[SensorState]
    result: Optional[MeasurementResult] = None
    error: Optional[SensorProtocolError] = None


class PollingController:
    """
    Periodic state watcher.

    Each tick issues one QUERY_STATE. The first tick that sees RESULT_READY
    fetches the measurement once; further RESULT_READY ticks are ignored until
    the recorded state leaves RESULT_READY, which re-arms the fetch for the
    next test cycle. The consumed flag lives on the sensor's state model, so
    queries made outside the poller (console commands) re-arm it too.
    A failed exchange only means "state unknown this cycle".
    """

    DEFAULT_INTERVAL_S = 3.0

    def __init__(self, sensor: ZE29ASensor, interval_s: float = DEFAULT_INTERVAL_S):
        self.sensor = sensor
        self.interval_s = max(0.05, interval_s)
        self._stop_flag = threading.Event()

        self.on_state: Optional[Callable[[SensorState], None]] = None
        self.on_result: Optional[Callable[[MeasurementResult], None]] = None
        self.on_error: Optional[Callable[[SensorProtocolError], None]] = None

    @property
    def result_consumed(self) -> bool:
        return self.sensor.state_model.result_consumed

    def tick(self) -> PollOutcome:
        """Run one bounded poll cycle. Never raises SensorProtocolError."""
        try:
            state = self.sensor.query_state()
        except SensorProtocolError as exc:
            log_json(logger, logging.WARNING, {"event": "poll_failed", "step": "query_state", "error": str(exc)})
            self._emit_error(exc)
            return PollOutcome(state=None, error=exc)

        if self.on_state:
            self.on_state(state)

        if state is not SensorState.RESULT_READY or self.result_consumed:
            return PollOutcome(state=state)

        try:
            result = self.sensor.read_result()
        except SensorProtocolError as exc:
            # Not marked consumed: the next RESULT_READY tick tries again.
            log_json(logger, logging.WARNING, {"event": "poll_failed", "step": "read_result", "error": str(exc)})
            self._emit_error(exc)
            return PollOutcome(state=state, error=exc)

        log_json(logger, logging.INFO, {"event": "measurement", **result.to_dict()})
        if self.on_result:
            self.on_result(result)
        return PollOutcome(state=state, result=result)

    def due(self, last_tick: float, now: Optional[float] = None) -> bool:
        """True once `interval_s` has passed since `last_tick` (monotonic seconds)."""
        now = time.monotonic() if now is None else now
        return now - last_tick >= self.interval_s

    def run(self, max_ticks: Optional[int] = None) -> None:
        """
        Blocking loop at a steady cadence until stop() (or `max_ticks`).
        Intended for headless hosts; Qt hosts drive tick() from a QTimer.
        """
        self._stop_flag.clear()
        ticks = 0
        next_poll_time = time.monotonic()

        while not self._stop_flag.is_set():
            self.tick()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break

            next_poll_time += self.interval_s
            sleep_for = next_poll_time - time.monotonic()
            if sleep_for > 0:
                self._stop_flag.wait(sleep_for)
            else:
                # Behind schedule (slow exchange); don't let drift accumulate.
                next_poll_time = time.monotonic()

    def stop(self) -> None:
        self._stop_flag.set()

    def _emit_error(self, exc: SensorProtocolError) -> None:
        if self.on_error:
            self.on_error(exc)
