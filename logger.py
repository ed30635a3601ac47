import logging
import logging.handlers
import os
import json
from typing import Any, Dict, Optional

# Default log file path (in project root)
LOG_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'sensor.log')

MAX_BYTES = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 3

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def configure_logging(log_file: Optional[str] = None, level: str = "INFO") -> None:
    """Install the rotating file + console handlers. Call once from an entry point."""
    global LOG_FILE
    if log_file:
        LOG_FILE = log_file

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.handlers.RotatingFileHandler(
                LOG_FILE, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding='utf-8'
            ),
            logging.StreamHandler()
        ],
        force=True,
    )

    # pyserial's port enumeration is chatty at DEBUG
    logging.getLogger("serial").setLevel(logging.WARNING)

def purge_log() -> None:
    """Truncate the log file."""
    with open(LOG_FILE, "w", encoding="utf-8"):
        pass

def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)


def log_json(logger: logging.Logger, level: int, payload: Dict[str, Any]) -> None:
    """
    Helper to emit one *single-line* JSON object at the chosen log level.
    """
    logger.log(level, json.dumps(payload, separators=(",", ":")))
