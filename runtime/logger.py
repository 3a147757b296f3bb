import threading
import sys
import logging
from typing import TextIO

from runtime.poller import SensorPoller

log = logging.getLogger("runtime")


class RuntimeLogger(threading.Thread):
    """Operator commands on stdin: ``log raw on|off`` and ``status``."""

    def __init__(self, poller: SensorPoller, stream: TextIO = sys.stdin):
        super().__init__(name="udco2s-console", daemon=True)
        self.poller = poller
        self.stream = stream

    def run(self):
        for line in self.stream:
            self.handle(line)

    def handle(self, line: str):
        parts = line.split()
        if not parts:
            return

        if parts[0] == "status":
            sample, state = self.poller.store.read()
            log.info(
                "link=%s co2=%d hum=%.1f tmp=%.1f last=%d timeouts=%d",
                state.value,
                sample.co2_ppm,
                sample.humidity_pct,
                sample.temperature_c,
                sample.last_success_epoch,
                self.poller.timeouts,
            )
        elif parts[:2] == ["log", "raw"] and len(parts) == 3 and parts[2] in ("on", "off"):
            self.poller.echo_lines = parts[2] == "on"
            log.info("Raw line echo %s", parts[2])
        else:
            log.debug("Ignoring console command: %s", line.strip())
