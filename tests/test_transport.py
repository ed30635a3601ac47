"""Tests for the pyserial-backed transport, with serial.Serial mocked out."""

from unittest.mock import MagicMock, patch

import pytest
import serial

from ZE29A.ze29a_core import ZE29ASensor
from ZE29A.ze29a_errors import NotConnected, TransportError
from ZE29A.ze29a_transport import SerialTransport


@pytest.fixture
def port():
    fake = MagicMock()
    fake.is_open = True
    fake.in_waiting = 0
    with patch("ZE29A.ze29a_transport.serial.Serial", return_value=fake) as ctor, \
         patch("ZE29A.ze29a_transport.time.sleep"):
        yield ctor, fake


def test_open_uses_8n1_and_clears_buffers(port):
    ctor, fake = port
    transport = SerialTransport("/dev/ttyUSB0")
    transport.open()

    args, kwargs = ctor.call_args
    assert args == ("/dev/ttyUSB0", 9600)
    assert kwargs["bytesize"] == serial.EIGHTBITS
    assert kwargs["parity"] == serial.PARITY_NONE
    assert kwargs["stopbits"] == serial.STOPBITS_ONE
    fake.reset_input_buffer.assert_called_once()
    fake.reset_output_buffer.assert_called_once()
    assert transport.is_open


def test_read_byte_uses_remaining_timeout(port):
    _, fake = port
    fake.read.return_value = b"\xFF"
    transport = SerialTransport("COM5")
    transport.open()

    assert transport.read_byte(1.25) == 0xFF
    assert fake.timeout == 1.25
    fake.read.assert_called_with(1)


def test_read_byte_timeout_returns_none(port):
    _, fake = port
    fake.read.return_value = b""
    transport = SerialTransport("COM5")
    transport.open()
    assert transport.read_byte(0.1) is None


def test_discard_input_reports_dropped_bytes(port):
    _, fake = port
    transport = SerialTransport("COM5")
    transport.open()
    fake.in_waiting = 3
    assert transport.discard_input() == 3
    assert fake.reset_input_buffer.call_count == 2


def test_write_failure_is_wrapped(port):
    _, fake = port
    fake.write.side_effect = serial.SerialTimeoutException("write timeout")
    transport = SerialTransport("COM5")
    transport.open()
    with pytest.raises(TransportError) as info:
        transport.write(b"\x00")
    assert isinstance(info.value.__cause__, serial.SerialException)


def test_closed_port_raises_not_connected():
    transport = SerialTransport("COM5")
    with pytest.raises(NotConnected):
        transport.write(b"\x00")
    with pytest.raises(NotConnected):
        transport.available()


def test_sensor_connect_failure_reports_error():
    with patch("ZE29A.ze29a_transport.serial.Serial", side_effect=serial.SerialException("no such port")):
        sensor = ZE29ASensor("COM99")
        errors = []
        sensor.on_error = errors.append
        assert sensor.connect() is False
    assert "COM99" in errors[0]


class _TimeoutCountingPort:
    is_open = True

    def __init__(self):
        self._timeout = SerialTransport.READ_TIMEOUT_S
        self.timeout_sets = 0

    @property
    def timeout(self):
        return self._timeout

    @timeout.setter
    def timeout(self, value):
        self.timeout_sets += 1
        self._timeout = value

    def read(self, n):
        return b"\x01"


def test_unchanged_timeout_does_not_reconfigure_port():
    transport = SerialTransport("COM5")
    transport.serial_port = _TimeoutCountingPort()

    for _ in range(9):
        transport.read_byte(0.1)
    assert transport.serial_port.timeout_sets == 0

    transport.read_byte(0.02)
    transport.read_byte(0.02)
    assert transport.serial_port.timeout_sets == 1
