"""Tests for the periodic state poller and its fetch-once rule."""

from conftest import reply
from ZE29A.ze29a_errors import NoResponse
from ZE29A.ze29a_frame import encode, CMD_QUERY_STATE, CMD_READ_RESULT
from ZE29A.ze29a_poller import PollingController
from ZE29A.ze29a_state import SensorState, AlarmLevel

IDLE = reply(CMD_QUERY_STATE, 0x31)
CALCULATING = reply(CMD_QUERY_STATE, 0x36)
RESULT_READY = reply(CMD_QUERY_STATE, 0x37)


def _result(concentration, alarm):
    return reply(CMD_READ_RESULT, concentration >> 8, concentration & 0xFF, 0, 0, alarm)


def test_tick_reports_state(make_sensor):
    sensor, _ = make_sensor([CALCULATING])
    outcome = PollingController(sensor).tick()
    assert outcome.state is SensorState.CALCULATING
    assert outcome.result is None
    assert outcome.error is None


def test_result_fetched_once_per_reading(make_sensor):
    sensor, transport = make_sensor([
        RESULT_READY, _result(20, 1),
        RESULT_READY,
        RESULT_READY,
    ])
    poller = PollingController(sensor)
    results = []
    poller.on_result = results.append

    first = poller.tick()
    assert first.result.concentration == 20
    assert first.result.alarm is AlarmLevel.DRINKING
    assert poller.result_consumed

    assert poller.tick().result is None
    assert poller.tick().result is None
    assert len(results) == 1
    assert transport.written.count(encode(CMD_READ_RESULT)) == 1


def test_new_cycle_rearms_fetch(make_sensor):
    sensor, _ = make_sensor([
        RESULT_READY, _result(20, 1),
        IDLE,
        RESULT_READY, _result(95, 2),
    ])
    poller = PollingController(sensor)
    results = []
    poller.on_result = results.append

    poller.tick()
    poller.tick()
    assert not poller.result_consumed
    poller.tick()

    assert [r.concentration for r in results] == [20, 95]
    assert results[1].alarm is AlarmLevel.DRUNK


def test_failed_query_does_not_raise(make_sensor):
    sensor, _ = make_sensor()
    poller = PollingController(sensor)
    errors = []
    poller.on_error = errors.append

    outcome = poller.tick()
    assert outcome.state is None
    assert isinstance(outcome.error, NoResponse)
    assert len(errors) == 1


def test_failed_result_read_is_retried_next_tick(make_sensor):
    sensor, _ = make_sensor([
        RESULT_READY, RESULT_READY[:3],
        RESULT_READY, _result(40, 1),
    ])
    poller = PollingController(sensor)

    first = poller.tick()
    assert first.error is not None
    assert not poller.result_consumed

    second = poller.tick()
    assert second.result.concentration == 40
    assert poller.result_consumed


def test_polling_continues_after_failure(make_sensor):
    sensor, _ = make_sensor([b"", IDLE])
    poller = PollingController(sensor, interval_s=0.05)
    states = []
    poller.on_state = states.append
    poller.run(max_ticks=2)
    assert states == [SensorState.IDLE]


def test_due():
    poller = PollingController(sensor=None, interval_s=3.0)
    assert not poller.due(last_tick=10.0, now=12.9)
    assert poller.due(last_tick=10.0, now=13.0)


def test_query_outside_poller_rearms_fetch(make_sensor):
    sensor, _ = make_sensor([
        RESULT_READY, _result(20, 1),
        IDLE,
        RESULT_READY, _result(95, 2),
    ])
    poller = PollingController(sensor)
    results = []
    poller.on_result = results.append

    poller.tick()
    # Another caller sees the sensor leave RESULT_READY between ticks.
    sensor.query_state()
    poller.tick()

    assert [r.concentration for r in results] == [20, 95]


def test_manual_read_counts_as_consumed(make_sensor):
    sensor, transport = make_sensor([RESULT_READY, _result(20, 1), RESULT_READY])
    sensor.query_state()
    sensor.read_result()

    poller = PollingController(sensor)
    assert poller.tick().result is None
    assert transport.written.count(encode(CMD_READ_RESULT)) == 1
