"""
FeedSource adapters.

- TcpFeedSource: reads the live BaseStation port of a receiver
  (dump1090 --net serves it on 30003).
- FileFeedSource: replays a recorded feed from disk or stdin, useful for
  testing a broker setup without a receiver attached.

Both only move bytes; framing happens downstream in `framing.iter_frames`.
"""

from __future__ import annotations

import logging
import socket
import sys
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from ..config import FeedSettings
from ..errors import TransportError
from ..ports import FeedSource

logger = logging.getLogger(__name__)


class TcpFeedSource(FeedSource):
    """
    Stream bytes from a receiver's TCP text port.

    Parameters
    ----------
    settings : FeedSettings
        Host, port, connect timeout, and read size.
    """

    def __init__(self, settings: FeedSettings) -> None:
        self._settings = settings
        self._sock: Optional[socket.socket] = None

    def connect(self) -> socket.socket:
        """Open the connection; failure is fatal for the caller."""
        host, port = self._settings.host, self._settings.port
        logger.info("Connecting to feed %s:%d", host, port)
        try:
            sock = socket.create_connection(
                (host, port), timeout=self._settings.connect_timeout_seconds
            )
        except OSError as e:
            raise TransportError(f"Cannot connect to feed {host}:{port}: {e}") from e
        # Timeouts apply only to connecting; reads block until data or EOF.
        sock.settimeout(None)
        self._sock = sock
        logger.info("Connection to feed started")
        return sock

    def chunks(self) -> Iterator[bytes]:
        sock = self._sock if self._sock is not None else self.connect()
        size = self._settings.read_chunk_bytes
        while True:
            try:
                data = sock.recv(size)
            except OSError as e:
                raise TransportError(f"Feed read failed: {e}") from e
            if not data:
                logger.info("Feed closed by peer")
                return
            yield data

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None


class FileFeedSource(FeedSource):
    """
    Replay a recorded feed. `path` of "-" reads standard input.
    """

    def __init__(self, path: str | Path, chunk_size: int = 4096) -> None:
        self._path = str(path)
        self._chunk_size = int(chunk_size)
        self._fh: Optional[BinaryIO] = None

    def chunks(self) -> Iterator[bytes]:
        if self._path == "-":
            fh: BinaryIO = sys.stdin.buffer
        else:
            try:
                fh = open(self._path, "rb")
            except OSError as e:
                raise TransportError(f"Cannot open feed file '{self._path}': {e}") from e
            self._fh = fh
        while True:
            data = fh.read(self._chunk_size)
            if not data:
                return
            yield data

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            finally:
                self._fh = None
