"""
Data Transfer Objects (DTOs) shared across the relay.

These are intentionally small and independent of any I/O or transport
libraries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

STATUS_OK = "OK"
STATUS_ERROR = "ERROR"


# === Decoded feed line ===
@dataclass
class SBS1Record:
    """
    One decoded SBS1/BaseStation line.

    Built field by field by the decoder, so it is mutable. Type-specific
    fields stay at their zero value when the line does not carry them.
    Only the first field-parse failure is kept in `error_message`.
    """
    message_type: str = ""          # AIR, ID, STA, MSG
    transmission_type: str = ""     # MSG subtype "1".."8"
    session_id: str = ""
    aircraft_id: str = ""
    hex_ident: str = ""             # ICAO 24-bit address as hex text
    flight_id: str = ""
    timestamp_ms: int = 0           # UTC epoch millis; 0 when unparseable

    call_sign: str = ""
    altitude: int = 0               # feet
    ground_speed: float = 0.0       # knots
    track: float = 0.0              # degrees
    latitude: float = 0.0
    longitude: float = 0.0
    vertical_rate: int = 0          # feet/minute
    squawk: str = ""
    alert: str = ""
    emergency: str = ""
    spi: str = ""
    is_on_ground: str = ""

    status: str = STATUS_OK
    error_message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    def mark_error(self, message: str) -> None:
        """Flag the record as degraded, keeping the first message only."""
        if self.status != STATUS_ERROR:
            self.status = STATUS_ERROR
            self.error_message = message


# === Consumer-side rotation window ===
@dataclass(frozen=True)
class RotationWindow:
    """An hour-aligned [start, deadline) output window and its file paths."""
    start: datetime       # aware UTC, top of the hour
    deadline_ms: int      # epoch millis of start + 1h (exclusive)
    final_path: Path      # <prefix>-YYYYMMDD_HHMM.csv
    tmp_path: Path        # final_path + ".tmp" while the window is open
