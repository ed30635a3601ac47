# ZE29A/cli.py
import queue, sys, threading, time
from typing import Optional
from ZE29A.ze29a_core import ZE29ASensor
from ZE29A.ze29a_errors import SensorProtocolError
from ZE29A.ze29a_poller import PollingController
from ZE29A.ze29a_state import SensorState, MeasurementResult, describe_state
from logger import configure_logging
from sensor_config import SensorConfig


MENU = """Commands:
 i - Begin a new test
 s - Query state
 r - Read result
 q - Query alarm thresholds
 t - Probe communication
 b - Read blow time
 c - Configure blow time
 z - Reset communication
 x - Exit"""

PREHEAT_WAIT_S = 15.0


class StatusPrinter:
    """Encapsulates state de-duping and pretty-printing logic."""

    def __init__(self, out=None):
        self._out = out or sys.stdout
        self._last_state_key = None

    def _print(self, line: str):
        print(line, file=self._out)

    def print_state(self, state: SensorState, code=None, force: bool = False):
        """Print only when the state changes, unless forced (explicit 's')."""
        key = (state, code if state is SensorState.UNKNOWN else None)
        if not force and key == self._last_state_key:
            return
        self._last_state_key = key
        self._print(f"[STATE] {describe_state(state, code)}")

    def print_result(self, result: MeasurementResult):
        self._print(f"[RESULT] Alcohol: {result.concentration} mg/100ml")
        self._print(f"[RESULT] Alarm: {result.describe_alarm()}")

    def print_error(self, exc: Exception):
        self._print(f"[ERROR] {type(exc).__name__}: {exc}")

    def print_info(self, msg: str):
        self._print(f"[INFO] {msg}")

    def prompt(self, text: str):
        print(text, end="", file=self._out, flush=True)


class SensorConsole:
    """Single-keystroke command dispatch over a connected ZE29ASensor."""

    def __init__(self, sensor: ZE29ASensor, poller: PollingController, printer: StatusPrinter,
                 read_line=input):
        self.sensor = sensor
        self.poller = poller
        self.printer = printer
        self._read_line = read_line
        self._lines: Optional[queue.Queue] = None
        self._last_tick = time.monotonic()

        self.poller.on_result = printer.print_result
        self.poller.on_state = lambda st: printer.print_state(st, sensor.state_model.raw_code)

        self._commands = {
            "i": self.begin_test,
            "s": self.query_state,
            "r": self.read_result,
            "q": self.query_thresholds,
            "t": self.probe,
            "b": self.get_blow_time,
            "c": self.set_blow_time,
            "z": self.reset,
        }

    def maybe_poll(self):
        now = time.monotonic()
        if self.poller.due(self._last_tick, now):
            self._last_tick = now
            self.poller.tick()

    def dispatch(self, key: str) -> bool:
        """Run one command. Returns False when the console should exit."""
        key = key.strip().lower()[:1]
        if key == "x":
            return False
        handler = self._commands.get(key)
        if handler is None:
            if key:
                self.printer.print_info(f"Unknown command '{key}'")
            return True
        try:
            handler()
        except SensorProtocolError as exc:
            self.printer.print_error(exc)
        return True

    # ---- commands ----
    def begin_test(self):
        self.printer.print_info("Starting alcohol test")
        state = self.sensor.query_state()
        self.printer.print_state(state, self.sensor.state_model.raw_code, force=True)
        if not self.sensor.state_model.can_begin_test:
            self.printer.print_info("Sensor must be Idle (0x31) or Result ready (0x37) to start a test.")
            return
        if not self.sensor.begin_test():
            self.printer.print_info("Device rejected the change to preheating.")
            return
        self.printer.print_info("Preheating sensor (about 10 seconds)...")
        if self.sensor.wait_for_state(SensorState.WAITING_FOR_BLOW, PREHEAT_WAIT_S):
            self.printer.print_info("Blow now.")

    def query_state(self):
        state = self.sensor.query_state()
        self.printer.print_state(state, self.sensor.state_model.raw_code, force=True)

    def read_result(self):
        if not self.sensor.is_result_available:
            self.printer.print_info("No result available to read.")
            return
        self.printer.print_result(self.sensor.read_result())

    def query_thresholds(self):
        t = self.sensor.query_thresholds()
        self.printer.print_info(f"Drinking threshold: {t.drinking} mg/100ml")
        self.printer.print_info(f"Drunk threshold: {t.drunk} mg/100ml")

    def probe(self):
        self.printer.print_info(f"Bytes available after command: {self.sensor.probe()}")

    def get_blow_time(self):
        self.printer.print_info(f"Current blow time: {self.sensor.get_blow_time()} seconds")

    def set_blow_time(self):
        raw = self._next_line("New blow time (1-10 seconds): ")
        try:
            seconds = int(raw.strip())
        except ValueError:
            self.printer.print_info(f"Not a number: {raw!r}")
            return
        if self.sensor.set_blow_time(seconds):
            self.printer.print_info("Blow time updated.")
        else:
            self.printer.print_info("Blow time change rejected.")

    def reset(self):
        if self.sensor.reset_connection():
            self.printer.print_info("Communication reset.")

    def run(self):
        """
        Command loop. Input is read on a daemon thread and handed over through
        a queue; all sensor I/O (commands and poll ticks) stays on this thread,
        so the poller keeps its interval while the prompt sits idle.
        """
        print(MENU)
        self._start_input_reader()
        self.printer.prompt("> ")
        while True:
            wait_s = max(0.0, self._last_tick + self.poller.interval_s - time.monotonic())
            try:
                line = self._lines.get(timeout=wait_s)
            except queue.Empty:
                self.maybe_poll()
                continue
            if line is None:
                break
            try:
                if not self.dispatch(line):
                    break
            except EOFError:
                break
            self.printer.prompt("> ")

    def _start_input_reader(self):
        self._lines = queue.Queue()

        def pump():
            while True:
                try:
                    line = self._read_line("")
                except EOFError:
                    self._lines.put(None)
                    return
                self._lines.put(line)

        threading.Thread(target=pump, name="ze29a-console-input", daemon=True).start()

    def _next_line(self, prompt: str) -> str:
        """Answer to a command's own prompt; polling pauses until it arrives."""
        if self._lines is None:
            return self._read_line(prompt)
        self.printer.prompt(prompt)
        line = self._lines.get()
        if line is None:
            raise EOFError
        return line


def main():
    cfg = SensorConfig(sys.argv[1] if len(sys.argv) > 1 else "config.json")
    configure_logging(cfg.log_file, cfg.log_level)

    # Status and errors reach the console through the logging StreamHandler.
    sensor = ZE29ASensor.from_config(cfg)

    if not sensor.connect(): sys.exit(1)

    printer = StatusPrinter()
    console = SensorConsole(sensor, PollingController(sensor, cfg.poll_interval_s), printer)

    # Verify basic communication before taking commands
    try:
        console.query_state()
    except SensorProtocolError as exc:
        printer.print_error(exc)

    print("Ctrl+C or 'x' to exit.")
    try:
        console.run()
    except KeyboardInterrupt:
        pass
    finally:
        sensor.disconnect()


if __name__ == "__main__":
    main()
