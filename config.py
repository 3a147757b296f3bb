import os
from dataclasses import dataclass
from typing import Tuple

from dotenv import load_dotenv
load_dotenv()

# Serial
UDCO2S_PATH = os.getenv("UDCO2S_PATH", "/dev/ttyACM0")
BAUDRATE = 115200
READ_TIMEOUT = float(os.getenv("READ_TIMEOUT", 6))
START_COMMAND = b"STA\r\n"

# Link health
STALE_AFTER_TIMEOUTS = int(os.getenv("STALE_AFTER_TIMEOUTS", 3))
RECONNECT_BASE_DELAY = float(os.getenv("RECONNECT_BASE_DELAY", 1))
RECONNECT_MAX_DELAY = float(os.getenv("RECONNECT_MAX_DELAY", 60))
RECONNECT_MAX_ATTEMPTS = int(os.getenv("RECONNECT_MAX_ATTEMPTS", 0))  # 0 = forever

# Metrics
BIND = os.getenv("BIND", ":5000")
METRICS_NAMESPACE = "udco2s"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


@dataclass
class PollerConfig:
    read_timeout: float = READ_TIMEOUT
    stale_after: int = STALE_AFTER_TIMEOUTS
    reconnect_base_delay: float = RECONNECT_BASE_DELAY
    reconnect_max_delay: float = RECONNECT_MAX_DELAY
    reconnect_max_attempts: int = RECONNECT_MAX_ATTEMPTS


def parse_bind(bind: str) -> Tuple[str, int]:
    """Split a ``host:port`` bind address. An empty host listens everywhere."""
    host, sep, port = bind.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid bind address {bind!r}, expected host:port")
    port_num = int(port)
    if not 0 < port_num < 65536:
        raise ValueError(f"port out of range in bind address {bind!r}")
    host = host.strip("[]")
    return host or "0.0.0.0", port_num
