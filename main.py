import argparse
import logging
import signal
import sys
from typing import List, Optional

from prometheus_client import REGISTRY

import config
from hardware_serial.bridge import SensorStartupError
from metrics.metrics import SensorCollector, start_metrics_server
from runtime import poller as sensor_poller
from runtime.logger import RuntimeLogger
from runtime.state import SampleStore

log = logging.getLogger("bridge")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _bind(value: str) -> str:
    try:
        config.parse_bind(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e
    return value


def _log_level(value: str) -> str:
    name = value.upper()
    if name not in LOG_LEVELS:
        raise argparse.ArgumentTypeError(f"unknown log level {value!r}")
    return name


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="UD-CO2S Prometheus exporter")
    parser.add_argument("--udco2", default=config.UDCO2S_PATH, help="UD-CO2S serial path (default: %(default)s)")
    parser.add_argument("--bind", type=_bind, default=config.BIND, help="bind address (default: %(default)s)")
    parser.add_argument(
        "--read-timeout",
        type=_positive_float,
        default=str(config.READ_TIMEOUT),
        help="serial read timeout in seconds (default: %(default)s)",
    )
    parser.add_argument(
        "--stale-after",
        type=_positive_int,
        default=str(config.STALE_AFTER_TIMEOUTS),
        help="consecutive read timeouts before the sensor is reported stale (default: %(default)s)",
    )
    parser.add_argument(
        "--reconnect-max-attempts",
        type=int,
        default=str(config.RECONNECT_MAX_ATTEMPTS),
        help="reconnect attempts after a serial error, 0 retries forever (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        type=_log_level,
        default=config.LOG_LEVEL,
        help="one of " + ", ".join(LOG_LEVELS) + " (default: %(default)s)",
    )
    parser.add_argument("--console", action="store_true", help="accept operator commands on stdin")
    return parser.parse_args(argv)


def poller_config(args: argparse.Namespace) -> config.PollerConfig:
    return config.PollerConfig(
        read_timeout=args.read_timeout,
        stale_after=args.stale_after,
        reconnect_max_attempts=max(args.reconnect_max_attempts, 0),
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    store = SampleStore()
    cfg = poller_config(args)
    try:
        poller = sensor_poller.start(args.udco2, cfg, store)
    except SensorStartupError as e:
        log.error("Sensor startup failed: %s", e)
        return 1

    REGISTRY.register(SensorCollector(store))
    try:
        start_metrics_server(args.bind)
    except OSError as e:
        log.error("Cannot serve metrics on %s: %s", args.bind, e)
        poller.stop()
        poller.join(cfg.read_timeout + 1)
        return 1

    if args.console:
        RuntimeLogger(poller).start()

    def shutdown(signum, frame):
        log.info("Received %s, stopping", signal.Signals(signum).name)
        poller.stop()

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    log.info("Main loop started")
    while poller.is_alive():
        poller.join(1)

    if poller.gave_up:
        log.error("Sensor connection lost for good, exiting")
        return 1
    if not poller.stop_requested:
        log.error("Poller exited unexpectedly")
        return 1
    log.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
