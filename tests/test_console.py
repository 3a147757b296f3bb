"""Tests for the stdin operator console."""

import io

import pytest

from hardware_serial.protocol import SensorSample
from runtime.logger import RuntimeLogger
from runtime.state import LinkState


@pytest.fixture
def console(poller):
    return RuntimeLogger(poller, stream=io.StringIO())


def test_log_raw_toggles_echo(console, poller):
    console.handle("log raw on\n")
    assert poller.echo_lines
    console.handle("log raw off\n")
    assert not poller.echo_lines


def test_status_reports_sample_and_state(console, store, caplog):
    store.commit(SensorSample(512, 45.3, 21.7, 1_700_000_000))
    store.set_state(LinkState.STALE)

    console.handle("status")

    assert "link=stale co2=512 hum=45.3 tmp=21.7 last=1700000000" in caplog.text


def test_unknown_commands_are_ignored(console, poller):
    console.handle("log raw maybe")
    console.handle("")
    console.handle("reboot")
    assert not poller.echo_lines


def test_run_reads_until_eof(poller):
    console = RuntimeLogger(poller, stream=io.StringIO("log raw on\nstatus\n"))
    console.run()
    assert poller.echo_lines
