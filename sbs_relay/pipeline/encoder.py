"""
Compact wire encoding for decoded SBS1 records.

Only MSG subtypes 1-6 are forwarded downstream. Each becomes one
comma-separated line whose first field is the subtype number and whose
second field is the record time in epoch millis:

    1,<ts>,<hex>,<callsign>
    2,<ts>,<hex>,<altitude>,<lat:.5f>,<lon:.5f>,<on_ground>
    3,<ts>,<hex>,<altitude>,<lat:.5f>,<lon:.5f>,<on_ground>
    4,<ts>,<hex>,<speed:.1f>,<track:.1f>,<vertical_rate>
    5,<ts>,<hex>,<altitude>,<on_ground>
    6,<ts>,<hex>,<altitude>,<squawk>

AIR, ID and STA are decoded but deliberately dropped, as is every other
(type, subtype) pair: the encoder returns "" and callers must treat that
as "no message".
"""

from __future__ import annotations

from typing import Callable, Dict, Tuple

from ..dto import SBS1Record
from .decoder import decode_line

NO_MESSAGE = ""


def _msg1(r: SBS1Record) -> Tuple[object, ...]:
    return (r.call_sign,)


def _position(r: SBS1Record) -> Tuple[object, ...]:
    return (r.altitude, f"{r.latitude:.5f}", f"{r.longitude:.5f}", r.is_on_ground)


def _velocity(r: SBS1Record) -> Tuple[object, ...]:
    return (f"{r.ground_speed:.1f}", f"{r.track:.1f}", r.vertical_rate)


def _surveillance_alt(r: SBS1Record) -> Tuple[object, ...]:
    return (r.altitude, r.is_on_ground)


def _surveillance_id(r: SBS1Record) -> Tuple[object, ...]:
    return (r.altitude, r.squawk)


# (message_type, transmission_type) -> subtype-specific tail
_ENCODERS: Dict[Tuple[str, str], Callable[[SBS1Record], Tuple[object, ...]]] = {
    ("MSG", "1"): _msg1,
    ("MSG", "2"): _position,   # surface position
    ("MSG", "3"): _position,   # airborne position
    ("MSG", "4"): _velocity,
    ("MSG", "5"): _surveillance_alt,
    ("MSG", "6"): _surveillance_id,
}


def encode_record(record: SBS1Record) -> str:
    """Return the compact line for `record`, or "" when it is not forwarded."""
    fn = _ENCODERS.get((record.message_type, record.transmission_type))
    if fn is None:
        return NO_MESSAGE
    head = (record.transmission_type, record.timestamp_ms, record.hex_ident)
    return ",".join(str(v) for v in head + fn(record))


def encode_line(line: str | bytes) -> str:
    """Decode then encode one raw feed line."""
    return encode_record(decode_line(line))
