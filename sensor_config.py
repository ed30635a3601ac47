import json
import sys


class SensorConfig:
    """A simple class to load and manage application configuration from a JSON file."""
    def __init__(self, config_path='config.json'):
        try:
            with open(config_path, 'r') as f:
                config_data = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            print(f"Error: Could not load or parse {config_path}. {e}")
            print("Please ensure 'config.json' exists and is correctly formatted.")
            sys.exit(1)

        # ---- sensor block ----
        sensor = config_data.get("sensor") or {}
        # keep names close to JSON keys for clarity
        self.port_name: str = sensor.get("port_name")
        try:
            self.baud_rate: int = int(sensor.get("baud_rate", 9600))
            self.response_timeout_ms: int = int(sensor.get("response_timeout_ms", 3000))
            self.settle_ms: int = int(sensor.get("settle_ms", 500))
            self.change_state_settle_ms: int = int(sensor.get("change_state_settle_ms", 800))
            self.poll_interval_ms: int = int(sensor.get("poll_interval_ms", 3000))
        except (TypeError, ValueError) as e:
            print(f"Error: Invalid numeric value in 'sensor' section of {config_path}. {e}")
            sys.exit(1)

        # ---- logging block ----
        log_cfg = config_data.get("logging") or {}
        self.log_file: str = log_cfg.get("file", "sensor.log")
        self.log_level: str = log_cfg.get("level", "INFO")

        # Validate that essential keys are present
        if not self.port_name:
            print("Error: 'sensor.port_name' is required in config.json.")
            sys.exit(1)

        timings = [self.baud_rate, self.response_timeout_ms, self.poll_interval_ms]
        if any(v <= 0 for v in timings) or self.settle_ms < 0 or self.change_state_settle_ms < 0:
            print("Error: baud rate, response timeout and poll interval must be positive; settle times non-negative.")
            sys.exit(1)

    # Seconds, as the protocol classes take them
    @property
    def response_timeout_s(self) -> float:
        return self.response_timeout_ms / 1000.0

    @property
    def settle_s(self) -> float:
        return self.settle_ms / 1000.0

    @property
    def change_state_settle_s(self) -> float:
        return self.change_state_settle_ms / 1000.0

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000.0

    def to_dict(self) -> dict:
        return {
            "sensor": {
                "port_name": self.port_name,
                "baud_rate": self.baud_rate,
                "response_timeout_ms": self.response_timeout_ms,
                "settle_ms": self.settle_ms,
                "change_state_settle_ms": self.change_state_settle_ms,
                "poll_interval_ms": self.poll_interval_ms,
            },
            "logging": {
                "file": self.log_file,
                "level": self.log_level,
            },
        }
