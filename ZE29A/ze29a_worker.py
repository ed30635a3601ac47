# ZE29A/ze29a_worker.py
from __future__ import annotations
from typing import Optional
from PySide6.QtCore import QObject, QThread, QTimer, Signal, Slot

from .ze29a_core import ZE29ASensor
from .ze29a_errors import SensorProtocolError
from .ze29a_poller import PollingController


class SensorWorker(QObject):
    """
    Qt host for the polling controller.
    Serial I/O runs on a dedicated QThread so a 3 s response window never
    blocks the UI; a QTimer on that thread drives PollingController.tick().
    """

    # ---- Signals you can wire to your UI ----
    started = Signal()
    stopped = Signal()
    status = Signal(str)
    error = Signal(str)
    stateChanged = Signal(object)   # SensorState
    resultReady = Signal(object)    # MeasurementResult

    def __init__(self, sensor: ZE29ASensor, interval_ms: int = 3000, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.sensor = sensor
        self.poller = PollingController(sensor, interval_ms / 1000.0)
        self._interval_ms = max(50, interval_ms)
        self._thread: Optional[QThread] = None
        self._timer: Optional[QTimer] = None
        self._running = False
        self._last_state = None

        # Wire core callbacks to Qt signals
        self.sensor.on_status = self.status.emit
        self.sensor.on_error = self.error.emit
        self.poller.on_state = self._on_state
        self.poller.on_result = self.resultReady.emit
        self.poller.on_error = self._on_poll_error

    # ----- Public API (thread-safe from main thread) -----
    @Slot()
    def start(self):
        if self._running:
            return
        self._running = True

        self._thread = QThread()
        self.moveToThread(self._thread)
        self._thread.started.connect(self._on_thread_started)
        self._thread.start()

    @Slot()
    def stop(self):
        self._running = False
        if self._timer:
            self._timer.stop()
            self._timer.deleteLater()
            self._timer = None
        self.sensor.disconnect()
        if self._thread:
            self._thread.quit()
            self._thread.wait()
            self._thread = None
        self.stopped.emit()

    @Slot(int)
    def setIntervalMs(self, ms: int):
        self._interval_ms = max(50, ms)
        self.poller.interval_s = self._interval_ms / 1000.0
        if self._timer:
            self._timer.setInterval(self._interval_ms)

    # ----- Private: lives on the worker thread -----
    @Slot()
    def _on_thread_started(self):
        if not self.sensor.connect():
            self.error.emit("Sensor connect failed")
            # stop() would wait() on this very thread; just let the thread finish.
            self._running = False
            self._thread.quit()
            self.stopped.emit()
            return

        self._timer = QTimer()
        self._timer.setInterval(self._interval_ms)
        self._timer.timeout.connect(self._poll_once)
        self._timer.start()
        self.started.emit()
        self._poll_once()

    @Slot()
    def _poll_once(self):
        if not self._running:
            return
        self.poller.tick()

    def _on_state(self, state):
        key = self.sensor.state_model.key
        if key != self._last_state:
            self._last_state = key
            self.stateChanged.emit(state)

    def _on_poll_error(self, exc: SensorProtocolError):
        self._last_state = None
        self.error.emit(f"Poll failed ({type(exc).__name__}): {exc}")
