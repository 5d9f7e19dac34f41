"""
Batch emission (synchronous).

Purpose
-------
Take a flushed batch from the BatchWindow, render it as newline-terminated
text, compress it, and forward the payload to the PublisherPort.

Behavior
--------
- `emit(lines)` -> compress + `publisher.publish(topic, payload)`; returns
  the payload. A window that closed with no lines still goes out, as the
  compressed empty string, so consumers see one payload per window.

Calls are synchronous: ingestion blocks until the publisher returns, so at
most one batch is ever in flight.
"""

from __future__ import annotations

import logging
from typing import List

from ..ports import PublisherPort
from .batching import render_batch
from .compress import Codec, compress_text

logger = logging.getLogger(__name__)


class BatchEmitter:
    """
    Minimal synchronous emitter.

    Parameters
    ----------
    publisher : PublisherPort
        Downstream transport; must be callable from this thread.
    topic : str
        Topic every batch is published to.
    codec : Literal["gzip", "zstd"]
        Payload compression.
    """

    def __init__(self, *, publisher: PublisherPort, topic: str, codec: Codec = "gzip") -> None:
        self._publisher = publisher
        self._topic = topic
        self._codec: Codec = codec
        self.batches_sent = 0
        self.lines_sent = 0

    # --- emission ---

    def emit(self, lines: List[str]) -> bytes:
        """Compress and publish one batch."""
        text = render_batch(lines)
        payload = compress_text(text, self._codec)
        logger.debug(
            "Batch of %d lines. Original size: %d. Compressed size: %d",
            len(lines),
            len(text),
            len(payload),
        )
        self._publisher.publish(self._topic, payload)
        self.batches_sent += 1
        self.lines_sent += len(lines)
        return payload
