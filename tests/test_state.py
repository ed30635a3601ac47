"""Tests for the recorded sensor state and its begin-test gate."""

import pytest

from ZE29A.ze29a_errors import InvalidStateTransition
from ZE29A.ze29a_state import (
    SensorState,
    AlarmLevel,
    SensorStateModel,
    MeasurementResult,
    describe_state,
)


def test_known_state_codes():
    assert SensorState.from_code(0x31) is SensorState.IDLE
    assert SensorState.from_code(0x37) is SensorState.RESULT_READY


@pytest.mark.parametrize("code", [0x00, 0x30, 0x38, 0xFF])
def test_unrecognised_state_code_is_unknown(code):
    model = SensorStateModel()
    assert model.record(code) is SensorState.UNKNOWN
    assert model.raw_code == code
    assert not model.is_result_available
    assert not model.can_begin_test


def test_alarm_codes():
    assert AlarmLevel.from_code(0x00) is AlarmLevel.NONE
    assert AlarmLevel.from_code(0x01) is AlarmLevel.DRINKING
    assert AlarmLevel.from_code(0x02) is AlarmLevel.DRUNK
    assert AlarmLevel.from_code(0x09) is AlarmLevel.UNKNOWN


def test_model_starts_unknown():
    model = SensorStateModel()
    assert model.state is SensorState.UNKNOWN
    assert not model.can_begin_test


def test_result_available_only_when_result_ready():
    model = SensorStateModel()
    for state in SensorState:
        if state is SensorState.UNKNOWN:
            continue
        model.record(state.value)
        assert model.is_result_available == (state is SensorState.RESULT_READY)


@pytest.mark.parametrize("state", [SensorState.IDLE, SensorState.RESULT_READY])
def test_begin_test_allowed(state):
    model = SensorStateModel()
    model.record(state.value)
    model.require_begin_test()


@pytest.mark.parametrize("state", [
    SensorState.PREHEATING,
    SensorState.WAITING_FOR_BLOW,
    SensorState.BLOWING,
    SensorState.BLOW_INTERRUPTED,
    SensorState.CALCULATING,
])
def test_begin_test_refused(state):
    model = SensorStateModel()
    model.record(state.value)
    with pytest.raises(InvalidStateTransition) as info:
        model.require_begin_test()
    assert info.value.state is state


def test_descriptions():
    assert describe_state(SensorState.UNKNOWN, 0x42) == "Unknown (0x42)"
    result = MeasurementResult(concentration=85, alarm=AlarmLevel.DRUNK, alarm_code=2)
    assert "Drunk" in result.describe_alarm()
    assert result.to_dict() == {"concentration_mg_100ml": 85, "alarm": "DRUNK", "alarm_code": 2}


def test_leaving_result_ready_clears_consumed_flag():
    model = SensorStateModel()
    model.record(0x37)
    model.mark_result_consumed()
    model.record(0x37)
    assert model.result_consumed
    model.record(0x32)
    assert not model.result_consumed


def test_state_key_separates_unknown_codes():
    model = SensorStateModel()
    model.record(0x40)
    first = model.key
    model.record(0x41)
    assert model.key != first
    model.record(0x31)
    idle = model.key
    model.record(0x31)
    assert model.key == idle
