import socket
import threading

import pytest

from sbs_relay.config import FeedSettings
from sbs_relay.errors import TransportError
from sbs_relay.intake.feed_source import FileFeedSource, TcpFeedSource
from sbs_relay.intake.framing import iter_frames


def test_file_source_replays_in_chunks(tmp_path):
    capture = tmp_path / "capture.sbs"
    capture.write_bytes(b"MSG,1,a\r\nMSG,3,b\r\nMSG,4,c")
    source = FileFeedSource(capture, chunk_size=5)
    try:
        assert list(iter_frames(source.chunks())) == [b"MSG,1,a", b"MSG,3,b", b"MSG,4,c"]
    finally:
        source.close()


def test_file_source_missing_file(tmp_path):
    source = FileFeedSource(tmp_path / "absent.sbs")
    with pytest.raises(TransportError):
        list(source.chunks())


def test_tcp_source_reads_until_peer_closes():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    port = server.getsockname()[1]

    def serve():
        conn, _ = server.accept()
        with conn:
            conn.sendall(b"MSG,1,a\r\nMSG,")
            conn.sendall(b"5,b\r\n")

    t = threading.Thread(target=serve, daemon=True)
    t.start()
    source = TcpFeedSource(FeedSettings(host="127.0.0.1", port=port))
    try:
        source.connect()
        assert list(iter_frames(source.chunks())) == [b"MSG,1,a", b"MSG,5,b"]
    finally:
        source.close()
        server.close()
        t.join(5.0)


def test_tcp_source_connect_refused():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()

    source = TcpFeedSource(FeedSettings(host="127.0.0.1", port=port, connect_timeout_seconds=2.0))
    with pytest.raises(TransportError):
        source.connect()
