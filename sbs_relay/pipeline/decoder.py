"""
SBS1 (BaseStation) line decoder.

Turns one framed feed line into an SBS1Record. Decoding never raises:
problems degrade the record (status="ERROR", first message kept, zero
value substituted) and decoding carries on with the next field.

Field layout
------------
Every line starts with eight common fields:

    0 message type   1 transmission type   2 session id   3 aircraft id
    4 hex ident      5 flight id           6 date gen     7 time gen

Which extras are read is decided by the field count alone, through
`_SCHEMA`; nothing is indexed past what the count guarantees.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from ..dto import SBS1Record
from ..utils import to_epoch_ms

logger = logging.getLogger(__name__)

SEPARATOR = ","
COMMON_FIELDS = 8
TIMESTAMP_LAYOUT = "%Y/%m/%dT%H:%M:%S.%f"

# Receivers send zero-padded dates and exactly three fractional digits.
_TIMESTAMP_TEXT = re.compile(r"[0-9]{4}/[0-9]{2}/[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}\.[0-9]{3}")
_INT_TEXT = re.compile(r"[+-]?[0-9]+")
_FLOAT_TEXT = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?(?i:inf|infinity|nan)"
)


def _strict_int(text: str) -> int:
    """int() without the whitespace and underscores Python would tolerate."""
    if not _INT_TEXT.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    return int(text)


def _strict_float(text: str) -> float:
    """float() without the whitespace and underscores Python would tolerate."""
    if not _FLOAT_TEXT.fullmatch(text):
        raise ValueError(f"invalid number {text!r}")
    return float(text)


# Minimum field count a message type needs to carry its full payload.
# Types not listed only need the common prefix.
_REQUIRED_FIELDS: Dict[str, int] = {
    "MSG": 22,
    "ID": 11,
}

# (attribute, index, parser); parser None means "copy the text as is".
_FieldSpec = Tuple[str, int, Optional[Callable[[str], object]]]

_CALLSIGN_ONLY: Tuple[_FieldSpec, ...] = (
    ("call_sign", 10, None),
)

_FULL_MSG: Tuple[_FieldSpec, ...] = (
    ("call_sign", 10, None),
    ("altitude", 11, _strict_int),
    ("ground_speed", 12, _strict_float),
    ("track", 13, _strict_float),
    ("latitude", 14, _strict_float),
    ("longitude", 15, _strict_float),
    ("vertical_rate", 16, _strict_int),
    ("squawk", 17, None),
    ("alert", 18, None),
    ("emergency", 19, None),
    ("spi", 20, None),
    ("is_on_ground", 21, None),
)

# field count -> populated extras
_SCHEMA: Dict[int, Tuple[_FieldSpec, ...]] = {
    11: _CALLSIGN_ONLY,
    22: _FULL_MSG,
}


def decode_line(line: str | bytes) -> SBS1Record:
    """
    Decode one SBS1 line into a record.

    Parameters
    ----------
    line : str | bytes
        A single framed line without its CR LF. Bytes are decoded as
        UTF-8 with replacement, since receivers occasionally emit junk.

    Returns
    -------
    SBS1Record
        Always a record; check `record.ok` / `record.error_message`.
    """
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")

    fields = line.split(SEPARATOR)
    rec = SBS1Record()

    _decode_common(rec, fields)

    required = _REQUIRED_FIELDS.get(rec.message_type, COMMON_FIELDS)
    if len(fields) < required:
        rec.mark_error(
            f"{rec.message_type or 'line'} has {len(fields)} fields, expected {required}"
        )

    for attr, idx, parser in _SCHEMA.get(len(fields), ()):
        _assign(rec, attr, fields[idx], parser)

    return rec


# === Helpers ===


def _decode_common(rec: SBS1Record, fields: list[str]) -> None:
    """Fill the eight common fields, tolerating a short line."""
    if len(fields) < COMMON_FIELDS:
        rec.mark_error(f"line has {len(fields)} fields, expected at least {COMMON_FIELDS}")
        fields = fields + [""] * (COMMON_FIELDS - len(fields))

    rec.message_type = fields[0]
    rec.transmission_type = fields[1]
    rec.session_id = fields[2]
    rec.aircraft_id = fields[3]
    rec.hex_ident = fields[4]
    rec.flight_id = fields[5]
    rec.timestamp_ms = _parse_timestamp(rec, fields[6], fields[7])


def _parse_timestamp(rec: SBS1Record, date_part: str, time_part: str) -> int:
    """
    Join date and time-with-millis into UTC epoch millis.

    On failure the record is flagged and 0 (the epoch) is returned as a
    sentinel; the caller keeps decoding.
    """
    text = f"{date_part}T{time_part}"
    try:
        if not _TIMESTAMP_TEXT.fullmatch(text):
            raise ValueError("expected YYYY/MM/DD and HH:MM:SS.mmm")
        dt = datetime.strptime(text, TIMESTAMP_LAYOUT).replace(tzinfo=timezone.utc)
    except ValueError as e:
        logger.error("Error parsing record time %r: %s", text, e)
        rec.mark_error(f"bad timestamp {text!r}: {e}")
        return 0
    return to_epoch_ms(dt)


def _assign(rec: SBS1Record, attr: str, raw: str, parser: Optional[Callable[[str], object]]) -> None:
    """Set one extra field; numeric parse failures degrade to zero."""
    if parser is None:
        setattr(rec, attr, raw)
        return

    # Blank numerics are "not present" for this subtype, not malformed.
    if raw == "":
        return

    try:
        setattr(rec, attr, parser(raw))
    except ValueError as e:
        logger.warning("Field %s=%r of %s unparseable: %s", attr, raw, rec.hex_ident or "?", e)
        rec.mark_error(f"{attr}: {e}")
        setattr(rec, attr, parser("0"))
