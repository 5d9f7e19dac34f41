"""
Hexagonal interfaces (Ports) for the relay.

These define the boundary between the core pipeline and its I/O adapters:
the receiver feed on one side, the publish/subscribe transport on the
other. Keep them small so they're easy to fake in tests.
"""

from __future__ import annotations

from typing import Callable, Iterator, Protocol

PayloadHandler = Callable[[bytes], None]


class FeedSource(Protocol):
    """
    Supplies the raw SBS1 byte stream for one connection.
    """

    def chunks(self) -> Iterator[bytes]:
        """
        Yield raw byte chunks as they arrive, in order, with arbitrary
        boundaries. The iterator ends when the stream ends; read failures
        MUST raise TransportError rather than end the iterator silently.
        """
        ...

    def close(self) -> None:
        """Release the underlying connection or file."""
        ...


class PublisherPort(Protocol):
    """
    Delivers one compressed batch to a topic.

    At-most-once, best effort: no acknowledgement or retry is expected
    from implementations.
    """

    def publish(self, topic: str, payload: bytes) -> None:
        """Send `payload` to `topic`; a payload that cannot be sent is logged and dropped."""
        ...


class SubscriberPort(Protocol):
    """
    Invokes a handler with the opaque payload of every received batch.

    Ordering across batches is whatever the transport provides.
    """

    def subscribe(self, topic: str, handler: PayloadHandler) -> None:
        """Register `handler` for `topic`; raise TransportError on failure."""
        ...
