import sys
import signal
import argparse
from PySide6.QtCore import QCoreApplication, QTimer

from sensor_config import SensorConfig
from logger import configure_logging, get_logger, purge_log

from ZE29A.ze29a_core import ZE29ASensor
from ZE29A.ze29a_state import describe_state
from ZE29A.ze29a_worker import SensorWorker

logger = get_logger(__name__)


def _print_state(state):
    print("[STATE]", describe_state(state))

def _print_result(result):
    print(f"[RESULT] {result.concentration} mg/100ml - {result.describe_alarm()}")

def _print_error(msg: str):
    print("[ERROR]", msg)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Poll a ZE29A breath-alcohol sensor and print its results.")
    parser.add_argument("--config", default="config.json", help="Path to the JSON config file.")
    parser.add_argument("--purge-log", action="store_true", help="Truncate the log file before starting.")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    cfg = SensorConfig(args.config)
    configure_logging(cfg.log_file, cfg.log_level)
    if args.purge_log:
        purge_log()

    logger.info("STARTING SENSOR MONITOR")

    app = QCoreApplication(sys.argv[:1])

    # Clean Ctrl+C handling for Qt event loop
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    # On Windows, add a tiny timer so SIGINT is processed
    QTimer.singleShot(0, lambda: None)

    worker = SensorWorker(ZE29ASensor.from_config(cfg), interval_ms=cfg.poll_interval_ms)

    worker.stateChanged.connect(_print_state)
    worker.resultReady.connect(_print_result)
    worker.error.connect(_print_error)
    worker.started.connect(lambda: print("SensorWorker started. Polling state... (Ctrl+C to quit)"))
    worker.stopped.connect(app.quit)

    worker.start()
    rc = app.exec()

    worker.stop()
    sys.exit(rc)


if __name__ == "__main__":
    main()
