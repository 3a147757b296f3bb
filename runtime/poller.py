import logging
import random
import threading
import time
from typing import Callable, Optional

import serial

from config import PollerConfig
from hardware_serial.bridge import SensorStartupError, SerialBridge
from hardware_serial.protocol import LineParseError, decode_line, parse_line
from metrics.metrics import parse_errors, serial_lines_read, serial_reconnects, serial_timeouts
from runtime.state import LinkState, SampleStore

log = logging.getLogger("poller")


class ExponentialBackoff:
    """Exponential backoff with jitter for reconnect attempts."""

    def __init__(self, base: float = 1.0, max_: float = 60.0, jitter: float = 0.2):
        self._base = base
        self._max = max_
        self._jitter = jitter
        self._current_delay = base

    def next_delay(self, *, success: bool) -> float:
        if success:
            self._current_delay = self._base
            return 0.0

        delay = self._current_delay
        self._current_delay = min(self._current_delay * 2, self._max)
        return delay * (1 + random.uniform(-self._jitter, self._jitter))


class SensorPoller(threading.Thread):
    """Reads sensor lines forever and keeps the sample store fresh."""

    def __init__(
        self,
        bridge: SerialBridge,
        store: SampleStore,
        config: PollerConfig,
        clock: Callable[[], float] = time.time,
        backoff: Optional[ExponentialBackoff] = None,
    ):
        super().__init__(name="udco2s-poller", daemon=True)
        self.bridge = bridge
        self.store = store
        self.config = config
        self.clock = clock
        self.backoff = backoff or ExponentialBackoff(config.reconnect_base_delay, config.reconnect_max_delay)
        self.echo_lines = False
        self.timeouts = 0
        self.gave_up = False
        self._stop_event = threading.Event()

    def stop(self):
        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def run(self):
        log.info("Polling %s", self.bridge.path)
        try:
            while not self._stop_event.is_set():
                try:
                    if not self.bridge.connected:
                        if not self._reconnect():
                            break
                        continue
                    self.poll_once()
                except Exception:
                    log.exception("Unexpected error while polling %s, reconnecting", self.bridge.path)
                    self.bridge.close()
                    self._set_state(LinkState.DISCONNECTED)
        finally:
            self.bridge.close()
            log.info("Poller stopped")

    def poll_once(self):
        """Read at most one line and commit it if it parses."""
        raw = self.bridge.read_line()
        if raw is None:
            if self.bridge.connected:
                self._on_timeout()
            else:
                self._set_state(LinkState.DISCONNECTED)
            return

        serial_lines_read.inc()
        self.timeouts = 0
        self._set_state(LinkState.CONNECTED)
        if self.echo_lines:
            log.info("scan: %r", raw)

        try:
            sample = parse_line(decode_line(raw), self.clock())
        except LineParseError as e:
            parse_errors.inc()
            log.warning("Discarding line: %s", e)
            return

        self.store.commit(sample)
        log.debug(
            "co2=%d hum=%.1f tmp=%.1f",
            sample.co2_ppm,
            sample.humidity_pct,
            sample.temperature_c,
        )

    def _on_timeout(self):
        self.timeouts += 1
        serial_timeouts.inc()
        log.debug("No line within %.1fs (%d in a row)", self.config.read_timeout, self.timeouts)
        if self.timeouts >= self.config.stale_after and self.store.state is not LinkState.STALE:
            log.warning("No data from sensor after %d timeouts, marking stale", self.timeouts)
            self._set_state(LinkState.STALE)

    def _set_state(self, state: LinkState):
        previous = self.store.set_state(state)
        if previous is not state:
            log.info("Sensor link %s -> %s", previous.value, state.value)

    def _reconnect(self) -> bool:
        attempts = 0
        max_attempts = self.config.reconnect_max_attempts
        while not self._stop_event.is_set():
            if max_attempts and attempts >= max_attempts:
                log.error("Giving up on %s after %d reconnect attempts", self.bridge.path, attempts)
                self.gave_up = True
                return False

            delay = self.backoff.next_delay(success=False)
            log.info("Reconnecting to %s in %.1fs", self.bridge.path, delay)
            if self._stop_event.wait(delay):
                return False

            attempts += 1
            try:
                self.bridge.connect()
            except SensorStartupError as e:
                log.warning("Reconnect attempt %d failed: %s", attempts, e)
                continue

            self.backoff.next_delay(success=True)
            serial_reconnects.inc()
            self.timeouts = 0
            self._set_state(LinkState.CONNECTED)
            return True
        return False


def start(
    path: str,
    config: PollerConfig,
    store: SampleStore,
    port_factory: Callable[..., serial.Serial] = serial.Serial,
) -> SensorPoller:
    """
    Open the sensor at ``path`` and start polling it in the background.

    Raises SensorStartupError when the port cannot be opened or the start
    command cannot be written. There is no retry here.
    """
    bridge = SerialBridge(path, config.read_timeout, port_factory=port_factory)
    bridge.connect()
    store.set_state(LinkState.CONNECTED)

    poller = SensorPoller(bridge, store, config)
    poller.start()
    return poller
