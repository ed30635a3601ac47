# ZE29A/ze29a_state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from .ze29a_errors import InvalidStateTransition


class SensorState(IntEnum):
    """Device status codes reported by QUERY_STATE (0x85)."""

    IDLE             = 0x31  # Waiting for instructions.
    PREHEATING       = 0x32  # Heater warm-up (~10 s) after a change-state to 0x32.
    WAITING_FOR_BLOW = 0x33
    BLOWING          = 0x34
    BLOW_INTERRUPTED = 0x35  # User stopped blowing before the configured blow time.
    CALCULATING      = 0x36
    RESULT_READY     = 0x37  # Measurement waiting for READ_RESULT.
    UNKNOWN          = -1    # Unrecognised status byte; the raw code is kept by the model.

    @classmethod
    def from_code(cls, code: int) -> "SensorState":
        try:
            state = cls(code)
        except ValueError:
            return cls.UNKNOWN
        return cls.UNKNOWN if state is cls.UNKNOWN else state


class AlarmLevel(IntEnum):
    NONE     = 0x00
    DRINKING = 0x01
    DRUNK    = 0x02
    UNKNOWN  = -1

    @classmethod
    def from_code(cls, code: int) -> "AlarmLevel":
        try:
            level = cls(code)
        except ValueError:
            return cls.UNKNOWN
        return cls.UNKNOWN if level is cls.UNKNOWN else level


STATE_DESCRIPTIONS = {
    SensorState.IDLE: "Idle (waiting for instructions)",
    SensorState.PREHEATING: "Preheating",
    SensorState.WAITING_FOR_BLOW: "Waiting for blow",
    SensorState.BLOWING: "Blowing",
    SensorState.BLOW_INTERRUPTED: "Blow interrupted",
    SensorState.CALCULATING: "Calculating result",
    SensorState.RESULT_READY: "Result ready to read",
}

ALARM_DESCRIPTIONS = {
    AlarmLevel.NONE: "No alcohol (<20 mg/100ml)",
    AlarmLevel.DRINKING: "Drinking (20-80 mg/100ml)",
    AlarmLevel.DRUNK: "Drunk (>=80 mg/100ml)",
}


def describe_state(state: SensorState, code: Optional[int] = None) -> str:
    if state is SensorState.UNKNOWN:
        return f"Unknown (0x{code:02X})" if code is not None else "Unknown"
    return STATE_DESCRIPTIONS[state]


@dataclass(frozen=True)
class MeasurementResult:
    """Concentration in mg/100ml plus the device's alarm classification."""

    concentration: int
    alarm: AlarmLevel
    alarm_code: int

    def describe_alarm(self) -> str:
        if self.alarm is AlarmLevel.UNKNOWN:
            return f"Unknown (0x{self.alarm_code:02X})"
        return ALARM_DESCRIPTIONS[self.alarm]

    def to_dict(self) -> dict:
        return {
            "concentration_mg_100ml": self.concentration,
            "alarm": self.alarm.name,
            "alarm_code": self.alarm_code,
        }


@dataclass(frozen=True)
class ThresholdPair:
    drinking: int
    drunk: int


class SensorStateModel:
    """
    Last state confirmed by the device.

    The model never computes transitions; it only records what QUERY_STATE
    returned. Starts UNKNOWN until the first successful query.

    `result_consumed` marks the current RESULT_READY run as already read. Any
    recorded state other than RESULT_READY clears it, whoever queried.
    """

    # Change-state to PREHEATING is documented as legal only from these.
    BEGIN_TEST_STATES = frozenset({SensorState.IDLE, SensorState.RESULT_READY})

    def __init__(self):
        self.state: SensorState = SensorState.UNKNOWN
        self.raw_code: Optional[int] = None
        self.result_consumed = False

    def record(self, code: int) -> SensorState:
        self.raw_code = code
        self.state = SensorState.from_code(code)
        if self.state is not SensorState.RESULT_READY:
            self.result_consumed = False
        return self.state

    def mark_result_consumed(self) -> None:
        self.result_consumed = True

    @property
    def key(self) -> tuple:
        """Identity of the recorded state; distinct unknown codes compare unequal."""
        return (self.state, self.raw_code if self.state is SensorState.UNKNOWN else None)

    @property
    def is_result_available(self) -> bool:
        return self.state is SensorState.RESULT_READY

    @property
    def can_begin_test(self) -> bool:
        return self.state in self.BEGIN_TEST_STATES

    def require_begin_test(self) -> None:
        if not self.can_begin_test:
            raise InvalidStateTransition(self.state, "BeginTest")

    def describe(self) -> str:
        return describe_state(self.state, self.raw_code)
