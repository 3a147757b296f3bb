"""Shared pytest fixtures for the test suite."""

import logging
import time
from collections import deque

import pytest

from config import PollerConfig
from hardware_serial.bridge import SerialBridge
from runtime.poller import SensorPoller
from runtime.state import SampleStore


class FakePort:
    """Stands in for serial.Serial.

    ``readline`` pops queued responses: bytes are returned, exceptions are
    raised. An empty queue behaves like a read timeout.
    """

    def __init__(self, path="/dev/fake", baudrate=115200, timeout=None, responses=()):
        self.path = path
        self.baudrate = baudrate
        self.timeout = timeout
        self.is_open = True
        self.written = []
        self.responses = deque(responses)
        self.write_error = None

    def write(self, data):
        if self.write_error is not None:
            raise self.write_error
        self.written.append(data)
        return len(data)

    def readline(self):
        if not self.responses:
            time.sleep(0.001)
            return b""
        item = self.responses.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.is_open = False


class FakeBackoff:
    def __init__(self):
        self.failures = 0
        self.resets = 0

    def next_delay(self, *, success):
        if success:
            self.resets += 1
        else:
            self.failures += 1
        return 0.0


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        self.now += 1
        return self.now


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    caplog.set_level(logging.DEBUG)


@pytest.fixture
def port():
    return FakePort()


@pytest.fixture
def port_factory(port):
    def factory(path, baudrate, timeout=None):
        port.path = path
        port.baudrate = baudrate
        port.timeout = timeout
        port.is_open = True
        return port

    return factory


@pytest.fixture
def store():
    return SampleStore()


@pytest.fixture
def poller_config():
    return PollerConfig(read_timeout=0.01, stale_after=3, reconnect_max_attempts=0)


@pytest.fixture
def bridge(port_factory):
    bridge = SerialBridge("/dev/fake", 0.01, port_factory=port_factory)
    bridge.connect()
    return bridge


@pytest.fixture
def backoff():
    return FakeBackoff()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def poller(bridge, store, poller_config, clock, backoff):
    return SensorPoller(bridge, store, poller_config, clock=clock, backoff=backoff)
