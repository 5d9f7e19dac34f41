"""
Store worker: decouples batch arrival from file I/O.

The subscribe callback (`on_message`) runs on the transport's thread. It
only decompresses and enqueues. A single daemon thread drains the queue
and is the sole owner of the RotatingWriter, so no lock guards the
rotation state.

The queue is unbounded: if the disk stalls, queued batches accumulate in
memory. A fatal storage error stops the worker; the error is kept for the
owner (the CLI) to report before exiting.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Optional

from ..errors import FatalError, PayloadError
from ..pipeline.compress import decompress_payload
from .writer import RotatingWriter

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass
class StoreWorker:
    """
    Owns the RotatingWriter and its feeding queue.

    Attributes:
        writer: The writer this worker drains into; opened by `start()`.

    State:
        error: Fatal error that stopped the worker, if any.
        batches_written / lines_written: Totals since start (worker thread).
        dropped_payloads: Payloads that could not be decompressed
            (transport thread).
    """
    writer: RotatingWriter

    thread: Optional[threading.Thread] = None
    error: Optional[FatalError] = None
    batches_written: int = 0
    lines_written: int = 0
    dropped_payloads: int = 0

    _queue: "queue.Queue[object]" = field(default_factory=queue.Queue, init=False, repr=False)
    _done: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    # ---------------------------- Control plane ----------------------------

    def start(self) -> None:
        """
        Open the first output window and start the drain thread.

        Raises StorageError directly if the first file cannot be opened.
        """
        with self._lock:
            if self.thread is not None:
                raise RuntimeError("StoreWorker already started")
            window = self.writer.open()
            logger.info("Writing to %s", window.tmp_path)
            self.thread = threading.Thread(target=self._run, name="store-writer", daemon=True)
            self.thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Drain what is queued, stop the thread, and close the current file."""
        with self._lock:
            thread = self.thread
        if thread is None:
            return
        self._queue.put(_STOP)
        thread.join(timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the worker ends; True if it has ended."""
        return self._done.wait(timeout)

    @property
    def failed(self) -> bool:
        return self.error is not None

    # ------------------------------ Ingress -------------------------------

    def on_message(self, payload: bytes) -> None:
        """Subscribe handler: decompress one batch and queue its text."""
        if self._done.is_set():
            logger.warning("Store worker has stopped; dropping batch of %d bytes", len(payload))
            return
        try:
            text = decompress_payload(payload)
        except PayloadError as e:
            self.dropped_payloads += 1
            logger.error("Dropping undecodable batch: %s", e)
            return
        self._queue.put(text)

    def pending(self) -> int:
        """Approximate number of batches waiting to be written."""
        return self._queue.qsize()

    # ------------------------------- Worker -------------------------------

    def _run(self) -> None:
        try:
            while True:
                item = self._queue.get()
                if item is _STOP:
                    break
                if not isinstance(item, str):
                    raise TypeError(f"Unexpected queue item {item!r}")
                self.lines_written += self.writer.write_batch(item)
                self.batches_written += 1
        except FatalError as e:
            logger.critical("Store worker stopped: %s", e)
            self._fail(e)
        except Exception as e:
            logger.exception("Store worker crashed")
            fatal = FatalError(f"Store worker crashed: {e}")
            fatal.__cause__ = e
            self._fail(fatal)
        finally:
            try:
                self.writer.close()
            except FatalError as e:
                logger.critical("Cannot close the storage file: %s", e)
                self._fail(e)
            finally:
                self._done.set()

    def _fail(self, error: FatalError) -> None:
        """Keep the first fatal error."""
        with self._lock:
            if self.error is None:
                self.error = error
