import threading
from enum import Enum
from typing import Tuple

from hardware_serial.protocol import SensorSample


class LinkState(Enum):
    CONNECTED = "connected"
    STALE = "stale"
    DISCONNECTED = "disconnected"


class SampleStore:
    """Holds the latest sample and link state.

    Samples are immutable; commit swaps the reference, so a reader always
    gets one whole sample.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sample = SensorSample()
        self._state = LinkState.DISCONNECTED

    def commit(self, sample: SensorSample):
        with self._lock:
            self._sample = sample

    def set_state(self, state: LinkState) -> LinkState:
        """Set the link state and return the previous one."""
        with self._lock:
            previous, self._state = self._state, state
        return previous

    def snapshot(self) -> SensorSample:
        with self._lock:
            return self._sample

    @property
    def state(self) -> LinkState:
        with self._lock:
            return self._state

    def read(self) -> Tuple[SensorSample, LinkState]:
        with self._lock:
            return self._sample, self._state
