import logging
from typing import Callable, Optional

import serial

from config import BAUDRATE, START_COMMAND

log = logging.getLogger("serial")

MAX_LINE_BYTES = 1024


class SensorStartupError(RuntimeError):
    """The sensor port could not be opened or the start command failed."""


class SerialBridge:
    def __init__(
        self,
        path: str,
        timeout: float,
        port_factory: Callable[..., serial.Serial] = serial.Serial,
    ):
        self.path = path
        self.timeout = timeout
        self.ser: Optional[serial.Serial] = None
        self._port_factory = port_factory
        self._pending = b""

    @property
    def connected(self) -> bool:
        return self.ser is not None

    def connect(self):
        """Open the port and tell the sensor to start streaming."""
        if self.ser and self.ser.is_open:
            return

        try:
            ser = self._port_factory(self.path, BAUDRATE, timeout=self.timeout)
        except (serial.SerialException, OSError, ValueError) as e:
            raise SensorStartupError(f"cannot open {self.path}: {e}") from e

        try:
            ser.write(START_COMMAND)
        except (serial.SerialException, OSError) as e:
            ser.close()
            raise SensorStartupError(f"start command failed on {self.path}: {e}") from e

        self.ser = ser
        self._pending = b""
        log.info("Connected serial port=%s baud=%d", self.path, BAUDRATE)

    def read_line(self) -> Optional[bytes]:
        """
        Return one complete line without its terminator.

        None means the read timed out without a full line, or the port
        failed and was dropped; check ``connected`` to tell them apart.
        """
        if not self.ser:
            return None
        try:
            chunk = self.ser.readline()
        except (serial.SerialException, OSError) as e:
            log.error("Serial read failed: %s", e)
            self._drop()
            return None

        data = self._pending + chunk
        if not data.endswith(b"\n"):
            if len(data) > MAX_LINE_BYTES:
                log.warning("Discarding %d bytes without line terminator", len(data))
                data = b""
            self._pending = data
            return None
        self._pending = b""
        return data.rstrip(b"\r\n")

    def _drop(self):
        try:
            if self.ser:
                self.ser.close()
        except (serial.SerialException, OSError) as e:
            log.warning("Serial close failed: %s", e)
        finally:
            self.ser = None
            self._pending = b""

    def close(self):
        self._drop()
