"""
UD-CO2S line protocol.

After ``STA`` the sensor streams one ASCII line per measurement:

    CO2=512,HUM=45.3,TMP=21.7
"""
import re
from dataclasses import dataclass

SENSOR_LINE = re.compile(r"CO2=(\d+),HUM=(\d+\.\d+),TMP=(\d+\.\d+)", re.ASCII)


class LineParseError(ValueError):
    """Raised when a line cannot be turned into a sample."""


@dataclass(frozen=True)
class SensorSample:
    co2_ppm: int = 0
    humidity_pct: float = 0.0
    temperature_c: float = 0.0
    last_success_epoch: int = 0


def decode_line(raw: bytes) -> str:
    try:
        return raw.decode("ascii").strip()
    except UnicodeDecodeError as e:
        raise LineParseError(f"undecodable line {raw!r}: {e}") from e


def parse_line(line: str, now: float) -> SensorSample:
    """Validate a whole line and build a sample stamped with ``now``.

    The pattern admits only ASCII digits, so conversion cannot fail once
    it matches.
    """
    match = SENSOR_LINE.search(line)
    if match is None:
        raise LineParseError(f"got wrong response: {line!r}")

    co2, hum, tmp = match.groups()
    return SensorSample(
        co2_ppm=int(co2),
        humidity_pct=float(hum),
        temperature_c=float(tmp),
        last_success_epoch=int(now),
    )
