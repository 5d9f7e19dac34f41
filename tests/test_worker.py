import errno
from datetime import datetime, timezone

import pytest

from sbs_relay.errors import FatalError, StorageError
from sbs_relay.pipeline.compress import compress_text
from sbs_relay.storage.worker import StoreWorker
from sbs_relay.storage.writer import RotatingWriter

from helpers import FakeClock, ms

UTC = timezone.utc
T14 = datetime(2024, 3, 5, 14, 10, tzinfo=UTC)


def make_worker(tmp_path):
    return StoreWorker(RotatingWriter(tmp_path, "fr", clock=FakeClock(T14)))


def test_batches_are_written_in_order(tmp_path):
    worker = make_worker(tmp_path)
    worker.start()
    first = f"1,{ms(T14)},4CA2D6,RYR1427\n"
    second = f"5,{ms(T14)},4CA2D6,2500,0\n6,{ms(T14)},4CA2D6,2500,7500\n"
    worker.on_message(compress_text(first))
    worker.on_message(compress_text(second, "zstd"))
    worker.stop(timeout=5.0)

    assert worker.wait(0) is True
    assert not worker.failed
    assert worker.batches_written == 2
    assert worker.lines_written == 3
    assert (tmp_path / "fr-20240305_1400.csv.tmp").read_text() == first + second


def test_undecodable_payload_is_dropped(tmp_path):
    worker = make_worker(tmp_path)
    worker.start()
    worker.on_message(b"definitely not compressed")
    worker.stop(timeout=5.0)

    assert worker.dropped_payloads == 1
    assert worker.batches_written == 0
    assert not worker.failed


def test_storage_failure_stops_worker(monkeypatch, tmp_path):
    def refuse(src, dst):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr("sbs_relay.storage.writer.os.replace", refuse)
    worker = make_worker(tmp_path)
    worker.start()
    late = datetime(2024, 3, 5, 15, 0, tzinfo=UTC)
    worker.on_message(compress_text(f"3,{ms(late)},4CA2D6,100,1.00000,2.00000,0\n"))

    assert worker.wait(5.0)
    assert isinstance(worker.error, StorageError)
    assert worker.failed

    # Later batches are refused without raising.
    worker.on_message(compress_text("1,1,A,B\n"))
    assert worker.pending() == 0


def test_start_twice_is_an_error(tmp_path):
    worker = make_worker(tmp_path)
    worker.start()
    try:
        with pytest.raises(RuntimeError):
            worker.start()
    finally:
        worker.stop(timeout=5.0)


class FullDiskHandle:
    """Wraps a text file whose final flush on close fails."""

    def __init__(self, fh):
        self._fh = fh
        self.name = fh.name

    def write(self, data):
        return self._fh.write(data)

    def flush(self):
        self._fh.flush()

    def close(self):
        self._fh.close()
        raise OSError(errno.ENOSPC, "No space left on device")


def test_close_failure_during_rotation_stops_worker(tmp_path):
    worker = make_worker(tmp_path)
    worker.start()
    worker.writer._fh = FullDiskHandle(worker.writer._fh)
    late = datetime(2024, 3, 5, 15, 0, tzinfo=UTC)
    worker.on_message(compress_text(f"3,{ms(late)},4CA2D6,100,1.00000,2.00000,0\n"))

    assert worker.wait(5.0)
    assert isinstance(worker.error, StorageError)
    assert worker.failed


def test_unexpected_exception_is_recorded_as_fatal(tmp_path):
    worker = make_worker(tmp_path)

    def broken(text):
        raise ValueError("unexpected")

    worker.writer.write_batch = broken
    worker.start()
    worker.on_message(compress_text("1,1,A,B\n"))

    assert worker.wait(5.0)
    assert isinstance(worker.error, FatalError)
    assert isinstance(worker.error.__cause__, ValueError)


def test_close_failure_on_stop_is_recorded(tmp_path):
    worker = make_worker(tmp_path)
    worker.start()
    worker.writer._fh = FullDiskHandle(worker.writer._fh)
    worker.stop(timeout=5.0)

    assert isinstance(worker.error, StorageError)


def test_empty_window_payload_writes_nothing(tmp_path):
    worker = make_worker(tmp_path)
    worker.start()
    worker.on_message(compress_text(""))
    worker.stop(timeout=5.0)

    assert worker.batches_written == 1
    assert worker.lines_written == 0
    assert not worker.failed
