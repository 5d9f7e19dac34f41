"""
Time-windowed batching of encoded lines.

The publisher operates on fixed tumbling windows measured in elapsed
seconds. `BatchWindow` accumulates encoded lines in arrival order; the
caller drives time through `tick(now)`, so the window itself never reads
a clock and is trivial to test.

Memory
------
With no size cap the accumulator grows with the message rate until the
next time-based flush. `max_lines` adds an optional early flush; it is
off unless configured.
"""

from __future__ import annotations

from typing import List, Optional


class BatchWindow:
    """
    Accumulates encoded messages and releases them once per window.

    Parameters
    ----------
    window_seconds : float
        Flush when at least this much time has elapsed since the window start.
    start : float
        Initial window start, in the same time base as later `now` values.
    max_lines : Optional[int]
        Optional cap; a tick also flushes once this many lines are held.
    """

    def __init__(self, window_seconds: float, start: float, *, max_lines: Optional[int] = None) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if max_lines is not None and max_lines < 1:
            raise ValueError("max_lines must be >= 1 when set")
        self._length = float(window_seconds)
        self._start = float(start)
        self._max_lines = max_lines
        self._lines: List[str] = []

    # --- state ---

    @property
    def window_start(self) -> float:
        return self._start

    def __len__(self) -> int:
        return len(self._lines)

    # --- operations ---

    def offer(self, line: str) -> None:
        """Append one encoded line; empty strings (unsupported subtypes) are dropped."""
        if line:
            self._lines.append(line)

    def due(self, now: float) -> bool:
        """True if a tick at `now` would flush."""
        if now - self._start >= self._length:
            return True
        return self._max_lines is not None and len(self._lines) >= self._max_lines

    def tick(self, now: float) -> Optional[List[str]]:
        """
        Close the window if it is due.

        Returns the lines collected since the last flush (possibly an empty
        list when nothing arrived) and restarts the window at `now`, or None
        if the window is still open.
        """
        if not self.due(now):
            return None
        return self.drain(now)

    def drain(self, now: float) -> List[str]:
        """Unconditionally hand over the pending lines and restart at `now`."""
        out = self._lines
        self._lines = []
        self._start = float(now)
        return out


def render_batch(lines: List[str]) -> str:
    """Newline-join a batch; every line, including the last, is terminated."""
    return "".join(line + "\n" for line in lines)
