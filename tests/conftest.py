"""Shared fixtures: a scripted byte-stream transport and a sensor bound to it."""

import time
from collections import deque

import pytest

from ZE29A.ze29a_core import ZE29ASensor
from ZE29A.ze29a_frame import encode


class FakeTransport:
    """
    In-memory stand-in for SerialTransport.

    `stale` bytes are buffered before anything is sent (they should be
    discarded by the pre-send flush). Each entry of `replies` is pushed into
    the RX buffer when the next frame is written, mimicking the device
    answering a request.
    """

    def __init__(self, replies=(), stale=b""):
        self.inbound = deque(stale)
        self.replies = deque(bytes(r) for r in replies)
        self.written = []
        self.flushes = 0
        self.is_open = True

    def open(self):
        self.is_open = True

    def close(self):
        self.is_open = False

    def write(self, data):
        self.written.append(bytes(data))
        if self.replies:
            self.inbound.extend(self.replies.popleft())
        return len(data)

    def flush(self):
        self.flushes += 1

    def available(self):
        return len(self.inbound)

    def read_byte(self, timeout):
        if self.inbound:
            return self.inbound.popleft()
        # Behave like a blocking read that times out.
        time.sleep(timeout)
        return None

    def discard_input(self):
        dropped = len(self.inbound)
        self.inbound.clear()
        return dropped


def reply(opcode, *data):
    """A device reply frame (same layout and checksum as a request)."""
    return encode(opcode, bytes(data))


@pytest.fixture
def make_sensor():
    def _make(replies=(), stale=b""):
        transport = FakeTransport(replies, stale)
        sensor = ZE29ASensor(
            "FAKE",
            transport=transport,
            response_timeout_s=0.05,
            settle_s=0,
            config_settle_s=0,
        )
        return sensor, transport
    return _make
