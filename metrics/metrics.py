import logging

from prometheus_client import Counter, start_http_server
from prometheus_client.core import GaugeMetricFamily

from config import METRICS_NAMESPACE, parse_bind
from runtime.state import LinkState, SampleStore

log = logging.getLogger("metrics")

# Counters
serial_lines_read = Counter("udco2s_serial_lines_read_total", "Number of complete lines read from the sensor")
parse_errors = Counter("udco2s_parse_errors_total", "Number of sensor lines that failed to parse")
serial_timeouts = Counter("udco2s_serial_timeouts_total", "Number of serial reads that timed out without a line")
serial_reconnects = Counter("udco2s_serial_reconnects_total", "Number of successful serial reconnects")


def _name(metric: str) -> str:
    return f"{METRICS_NAMESPACE}_{metric}"


class SensorCollector:
    """Exposes the latest sensor sample on every scrape."""

    def __init__(self, store: SampleStore):
        self.store = store

    def _families(self):
        return (
            GaugeMetricFamily(_name("CO2"), "CO2"),
            GaugeMetricFamily(_name("HUM"), "humidity"),
            GaugeMetricFamily(_name("TEMP"), "temperature"),
            GaugeMetricFamily(_name("last"), "last time value get successfully"),
            GaugeMetricFamily(_name("sensor_state"), "Serial link state of the sensor", labels=["state"]),
        )

    def describe(self):
        return list(self._families())

    def collect(self):
        sample, state = self.store.read()
        co2, hum, temp, last, link = self._families()

        co2.add_metric([], sample.co2_ppm)
        hum.add_metric([], sample.humidity_pct)
        temp.add_metric([], sample.temperature_c)
        last.add_metric([], sample.last_success_epoch)
        for s in LinkState:
            link.add_metric([s.value], 1 if s is state else 0)

        yield co2
        yield hum
        yield temp
        yield last
        yield link


def start_metrics_server(bind: str):
    addr, port = parse_bind(bind)
    start_http_server(port, addr=addr)
    log.info("Serving metrics on http://%s:%d/metrics", addr, port)
