"""
Hour-scoped CSV writer with timestamp-driven rotation.

State machine
-------------
- Open: a `.tmp` file is held for appends and the current window's
  deadline (epoch millis) is known.
- Rotating: entered when a line's embedded timestamp (field 1) is >= the
  deadline. The handle is closed, the `.tmp` is atomically renamed to its
  final name, a new window is computed from the wall clock, and a new
  `.tmp` is opened. The line that triggered rotation goes to the new file.

Rotation follows record time, not a timer: a feed that stops, or lags real
time, never rotates. A `.tmp` left behind by an abrupt shutdown is never
finalized here.

The writer is not thread-safe; exactly one thread may own it.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TextIO, Tuple

from ..dto import RotationWindow
from ..errors import StorageError
from ..utils import ensure_dirs, utc_now
from .rotation import next_rollover

logger = logging.getLogger(__name__)

_KNOWN_SUBTYPES = frozenset({"1", "2", "3", "4", "5", "6"})


class RotatingWriter:
    """
    Append compact-format lines to hourly files.

    Parameters
    ----------
    files_path : str | os.PathLike
        Output directory; created on open if missing.
    prefix : str
        File name prefix (`<prefix>-YYYYMMDD_HHMM.csv`).
    clock : Callable[[], datetime]
        Wall clock used to open windows; injectable for tests.
    """

    def __init__(
        self,
        files_path: str | os.PathLike,
        prefix: str = "fr",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._files_path = Path(files_path)
        self._prefix = prefix
        self._clock = clock
        self._window: Optional[RotationWindow] = None
        self._fh: Optional[TextIO] = None
        self.rotations = 0

    # --- lifecycle ---

    @property
    def window(self) -> Optional[RotationWindow]:
        return self._window

    def open(self) -> RotationWindow:
        """Open the window for the current wall-clock hour."""
        if self._fh is not None:
            raise RuntimeError("RotatingWriter is already open")
        try:
            ensure_dirs(self._files_path)
        except OSError as e:
            raise StorageError(f"Cannot create output directory '{self._files_path}': {e}") from e
        window = next_rollover(self._files_path, self._prefix, self._clock())
        self._start_window(window)
        return window

    def close(self) -> None:
        """
        Close the current handle; the `.tmp` file is left unfinalized.

        Raises StorageError if buffered data cannot be written out.
        """
        fh, self._fh = self._fh, None
        if fh is None:
            return
        try:
            fh.close()
        except OSError as e:
            raise StorageError(f"Cannot close '{fh.name}': {e}") from e

    def __enter__(self) -> "RotatingWriter":
        self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # --- writing ---

    def write_batch(self, text: str) -> int:
        """
        Split a decompressed batch into lines and append them.

        Returns the number of lines written. Raises StorageError if the
        file cannot be written, finalized, or reopened.
        """
        self._require_open()

        written = 0
        for line in text.split("\n"):
            fields = line.split(",")

            # The segment after the batch's trailing newline is empty.
            if len(fields) < 2:
                if line:
                    logger.warning("Skipping malformed line: %r", line)
                continue

            if fields[0] not in _KNOWN_SUBTYPES:
                logger.warning("Skipping line with unknown message type %r", fields[0])
                continue

            try:
                ts = int(fields[1])
            except ValueError:
                logger.error("Error converting time %r; writing line without rotation check", fields[1])
            else:
                if ts >= self._require_open()[1].deadline_ms:
                    self._rotate()

            self._write(line + "\n")
            written += 1

        self._flush()
        return written

    # --- helpers ---

    def _rotate(self) -> None:
        """Finalize the current window and open the next one."""
        old = self._require_open()[1]
        logger.info("Rolling the storage file now: %s", old.final_path.name)
        self.close()
        try:
            os.replace(old.tmp_path, old.final_path)
        except OSError as e:
            raise StorageError(
                f"Cannot finalize '{old.tmp_path}' -> '{old.final_path}': {e}"
            ) from e
        self.rotations += 1
        self._start_window(next_rollover(self._files_path, self._prefix, self._clock(), previous=old))

    def _start_window(self, window: RotationWindow) -> None:
        try:
            fh = open(window.tmp_path, "a", encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot open output file '{window.tmp_path}': {e}") from e
        self._fh = fh
        self._window = window
        logger.debug("Start time         : %s", window.start.isoformat())
        logger.debug("Next roll timestamp: %d", window.deadline_ms)
        logger.debug("New filename       : %s", window.final_path.name)

    def _require_open(self) -> Tuple[TextIO, RotationWindow]:
        if self._fh is None or self._window is None:
            raise RuntimeError("RotatingWriter.open() must be called first")
        return self._fh, self._window

    def _write(self, data: str) -> None:
        fh = self._require_open()[0]
        try:
            fh.write(data)
        except OSError as e:
            raise StorageError(f"Cannot write to '{fh.name}': {e}") from e

    def _flush(self) -> None:
        fh = self._require_open()[0]
        try:
            fh.flush()
        except OSError as e:
            raise StorageError(f"Cannot flush '{fh.name}': {e}") from e
