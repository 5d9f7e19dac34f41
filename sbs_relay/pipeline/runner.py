"""
Ingest orchestration.

One sequential loop per feed connection:

    FeedSource -> iter_frames -> decode_line -> encode_record
               -> BatchWindow.offer / tick -> BatchEmitter.emit

There is no internal parallelism: a slow publisher stalls further reads.
The window is ticked after every frame (including frames that produce no
message), so flush timing depends on feed traffic, not a timer.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..intake.framing import iter_frames
from ..ports import FeedSource
from .batching import BatchWindow
from .decoder import decode_line
from .emitter import BatchEmitter
from .encoder import encode_record

logger = logging.getLogger(__name__)


@dataclass
class IngestStats:
    """Counters for one run_ingest call."""
    frames: int = 0
    blank_frames: int = 0
    degraded_records: int = 0
    encoded: int = 0
    batches: int = 0


def run_ingest(
    *,
    source: FeedSource,
    emitter: BatchEmitter,
    window_seconds: float,
    max_lines: Optional[int] = None,
    clock: Callable[[], float] = time.monotonic,
    flush_on_eof: bool = True,
) -> IngestStats:
    """
    Run the ingest pipeline until the feed ends.

    Parameters
    ----------
    source : FeedSource
        Raw byte stream for one connection.
    emitter : BatchEmitter
        Compresses and publishes each flushed batch.
    window_seconds : float
        Batch window length.
    max_lines : Optional[int]
        Optional batch size cap (see BatchWindow).
    clock : Callable[[], float]
        Elapsed-time source in seconds; injectable for tests.
    flush_on_eof : bool
        Publish the partial batch left when the feed ends cleanly.

    Returns
    -------
    IngestStats

    Notes
    -----
    TransportError from the source or publisher propagates unchanged; the
    pending batch is then lost, and no cleanup is attempted.
    """
    stats = IngestStats()
    window = BatchWindow(window_seconds, clock(), max_lines=max_lines)

    for frame in iter_frames(source.chunks()):
        stats.frames += 1
        if frame:
            record = decode_line(frame)
            if not record.ok:
                stats.degraded_records += 1
                logger.debug("Degraded record (%s): %r", record.error_message, frame)
            line = encode_record(record)
            if line:
                stats.encoded += 1
                window.offer(line)
        else:
            stats.blank_frames += 1

        batch = window.tick(clock())
        if batch is not None:
            logger.debug("Batch window completed. Preparing to send data.")
            emitter.emit(batch)
            stats.batches += 1

    if flush_on_eof and len(window):
        logger.info("Feed ended; publishing final partial batch of %d lines", len(window))
        emitter.emit(window.drain(clock()))
        stats.batches += 1

    logger.info(
        "Feed ended after %d frames (%d encoded, %d degraded, %d batches)",
        stats.frames,
        stats.encoded,
        stats.degraded_records,
        stats.batches,
    )
    return stats
