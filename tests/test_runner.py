import pytest

from sbs_relay.errors import TransportError
from sbs_relay.pipeline.compress import decompress_payload
from sbs_relay.pipeline.emitter import BatchEmitter
from sbs_relay.pipeline.runner import run_ingest

from helpers import TS, CollectingPublisher, ListFeedSource, StepClock, sbs_line

AIR = "AIR,,333,1,4CA1D4,101,2008/11/28,23:48:18.611,2008/11/28,23:48:18.611"


def feed(*lines: str) -> bytes:
    return "".join(line + "\r\n" for line in lines).encode("ascii")


def run(chunks, clock, **kwargs):
    publisher = CollectingPublisher()
    emitter = BatchEmitter(publisher=publisher, topic="adsb/compact")
    stats = run_ingest(
        source=ListFeedSource(chunks),
        emitter=emitter,
        window_seconds=kwargs.pop("window_seconds", 3),
        clock=clock,
        **kwargs,
    )
    return stats, publisher


def test_window_flush_publishes_encoded_lines():
    data = feed(
        sbs_line(tx="1", call_sign="RYR1427"),
        AIR,
        sbs_line(tx="3", altitude="37000", latitude="51.45735", longitude="-1.02826"),
        sbs_line(tx="4", ground_speed="485", track="12.34", vertical_rate="-64"),
    )
    stats, publisher = run([data[:50], data[50:]], StepClock([0, 0, 1, 2, 3]))

    assert stats.frames == 4
    assert stats.encoded == 3
    assert stats.batches == 1
    assert len(publisher.sent) == 1
    topic, payload = publisher.sent[0]
    assert topic == "adsb/compact"
    assert decompress_payload(payload) == (
        f"1,{TS},4CA2D6,RYR1427\n"
        f"3,{TS},4CA2D6,37000,51.45735,-1.02826,0\n"
        f"4,{TS},4CA2D6,485.0,12.3,-64\n"
    )


def test_partial_batch_published_at_eof():
    data = feed(sbs_line(tx="5", altitude="2500"), sbs_line(tx="6", altitude="2500", squawk="1200"))
    stats, publisher = run([data], StepClock([0, 0, 1, 1]))

    assert stats.batches == 1
    assert decompress_payload(publisher.sent[0][1]) == (
        f"5,{TS},4CA2D6,2500,0\n6,{TS},4CA2D6,2500,1200\n"
    )


def test_partial_batch_discarded_without_flush_on_eof():
    data = feed(sbs_line(tx="5", altitude="2500"))
    stats, publisher = run([data], StepClock([0, 0, 1]), flush_on_eof=False)

    assert stats.batches == 0
    assert publisher.sent == []


def test_windows_without_messages_publish_empty_payloads():
    stats, publisher = run([feed(AIR, AIR, AIR)], StepClock([0, 0, 4, 8]))
    assert stats.frames == 3
    assert stats.batches == 2
    assert [decompress_payload(p) for _, p in publisher.sent] == ["", ""]


def test_blank_and_degraded_frames_are_counted():
    data = b"\r\n" + feed(sbs_line(tx="3", altitude="x", latitude="1.5", longitude="2.5"), "MSG,3")
    stats, publisher = run([data], StepClock([0]))

    assert stats.frames == 3
    assert stats.blank_frames == 1
    assert stats.degraded_records == 2
    assert stats.encoded == 2
    assert decompress_payload(publisher.sent[0][1]).splitlines()[0] == f"3,{TS},4CA2D6,0,1.50000,2.50000,0"


def test_max_lines_cap_splits_batches():
    data = feed(*(sbs_line(tx="5", altitude=str(1000 + i)) for i in range(5)))
    stats, publisher = run([data], StepClock([0]), window_seconds=60, max_lines=2)

    assert [len(decompress_payload(p).splitlines()) for _, p in publisher.sent] == [2, 2, 1]
    assert stats.batches == 3


def test_read_error_propagates():
    class BrokenSource(ListFeedSource):
        def chunks(self):
            yield feed(sbs_line(tx="1", call_sign="X"))
            raise TransportError("connection reset by peer")

    publisher = CollectingPublisher()
    with pytest.raises(TransportError):
        run_ingest(
            source=BrokenSource([]),
            emitter=BatchEmitter(publisher=publisher, topic="t"),
            window_seconds=3,
            clock=StepClock([0]),
        )
    assert publisher.sent == []


def test_emitter_counts_batches_including_empty_ones():
    publisher = CollectingPublisher()
    emitter = BatchEmitter(publisher=publisher, topic="t", codec="zstd")

    empty = emitter.emit([])
    assert decompress_payload(empty) == ""
    payload = emitter.emit(["1,2,A,B"])
    assert decompress_payload(payload) == "1,2,A,B\n"
    assert (emitter.batches_sent, emitter.lines_sent) == (2, 1)
    assert publisher.sent == [("t", empty), ("t", payload)]
