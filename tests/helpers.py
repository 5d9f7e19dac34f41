"""Shared builders for SBS1 lines and fake collaborators."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Tuple

# 2008/11/28 23:48:18.611 UTC
TS = 1227916098611
DATE = "2008/11/28"
TIME = "23:48:18.611"


def sbs_line(
    msg_type: str = "MSG",
    tx: str = "3",
    hex_ident: str = "4CA2D6",
    date: str = DATE,
    time: str = TIME,
    *,
    call_sign: str = "",
    altitude: str = "",
    ground_speed: str = "",
    track: str = "",
    latitude: str = "",
    longitude: str = "",
    vertical_rate: str = "",
    squawk: str = "",
    alert: str = "",
    emergency: str = "",
    spi: str = "",
    on_ground: str = "0",
) -> str:
    """A 22-field BaseStation line as dump1090 emits it."""
    fields = [
        msg_type, tx, "111", "11111", hex_ident, "111111", date, time, date, time,
        call_sign, altitude, ground_speed, track, latitude, longitude,
        vertical_rate, squawk, alert, emergency, spi, on_ground,
    ]
    return ",".join(fields)


class FakeClock:
    """Settable clock returning whatever `now` holds."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class StepClock:
    """Returns the given values in order, then keeps returning the last one."""

    def __init__(self, values: Iterable[float]):
        self._values = list(values)
        self.calls = 0

    def __call__(self) -> float:
        i = min(self.calls, len(self._values) - 1)
        self.calls += 1
        return self._values[i]


class CollectingPublisher:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, bytes]] = []

    def publish(self, topic: str, payload: bytes) -> None:
        self.sent.append((topic, payload))


class ListFeedSource:
    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = list(chunks)
        self.closed = False

    def chunks(self):
        yield from self._chunks

    def close(self) -> None:
        self.closed = True


def ms(dt: datetime) -> int:
    return round(dt.timestamp() * 1000)
