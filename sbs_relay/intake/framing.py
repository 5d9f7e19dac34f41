"""
Line framing for the SBS1 text feed.

BaseStation output terminates every line with CR LF. Framing is split in
two: `scan_crlf` is a pure "how much to consume, what token" decision over
a buffer, and `iter_frames` drives it over a stream of chunks.

No decoding happens here; frames are raw bytes.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Tuple

_DELIM = b"\r\n"
_CR = 0x0D


def drop_cr(data: bytes) -> bytes:
    """Strip one terminal carriage return, if present."""
    if data and data[-1] == _CR:
        return data[:-1]
    return data


def scan_crlf(data: bytes, at_eof: bool) -> Tuple[int, Optional[bytes]]:
    """
    Decide how much of `data` to consume and which line (if any) it yields.

    Returns
    -------
    (advance, token)
        advance : bytes to drop from the front of the buffer.
        token   : the extracted line, or None when more data is needed.

    Rules
    -----
    - Delimiter at index i: consume i + 2 bytes, return data[:i].
    - At EOF with no delimiter: consume everything and return it as the
      final, unterminated line.
    - At EOF with an empty buffer: nothing left, (0, None).
    Tokens have a lone trailing CR stripped in both cases.
    """
    if at_eof and not data:
        return 0, None

    i = data.find(_DELIM)
    if i >= 0:
        return i + len(_DELIM), drop_cr(data[:i])

    if at_eof:
        return len(data), drop_cr(data)

    return 0, None


def iter_frames(chunks: Iterable[bytes]) -> Iterator[bytes]:
    """
    Yield one raw frame per line from an iterable of byte chunks.

    The generator is lazy and holds only the unconsumed tail between
    chunks. It ends after the underlying iterable is exhausted and the
    final unterminated fragment (if any) has been emitted. Exceptions from
    `chunks` propagate unchanged.
    """
    buf = b""
    for chunk in chunks:
        if not chunk:
            continue
        buf += chunk
        while True:
            advance, token = scan_crlf(buf, at_eof=False)
            if token is None:
                break
            buf = buf[advance:]
            yield token

    while True:
        advance, token = scan_crlf(buf, at_eof=True)
        if token is None:
            return
        buf = buf[advance:]
        yield token
