"""
Batch payload codec.

Publishers compress the newline-joined batch text with gzip (default) or
zstd. Consumers do not need to be told which: `decompress_payload` sniffs
the magic bytes and always drains the whole stream, so the trailing
newline of the last line survives the round trip.
"""

from __future__ import annotations

import gzip
import io
import zlib
from typing import Final, Literal

import zstandard  # type: ignore

from ..errors import PayloadError

Codec = Literal["gzip", "zstd"]

# --- Magic numbers (as they appear on the wire) ---
MAGIC_GZIP: Final[bytes] = bytes.fromhex("1f 8b".replace(" ", ""))
MAGIC_ZSTD: Final[bytes] = bytes.fromhex("28 b5 2f fd".replace(" ", ""))


def compress_text(text: str, codec: Codec = "gzip") -> bytes:
    """Encode `text` as UTF-8 and compress it with `codec`."""
    raw = text.encode("utf-8")
    if codec == "gzip":
        return gzip.compress(raw)
    if codec == "zstd":
        return zstandard.ZstdCompressor().compress(raw)
    raise ValueError(f"Unknown codec: {codec!r}")


def detect_codec(payload: bytes) -> Codec:
    """Identify the payload codec from its leading bytes."""
    if payload[:2] == MAGIC_GZIP:
        return "gzip"
    if payload[:4] == MAGIC_ZSTD:
        return "zstd"
    raise PayloadError("Payload is neither gzip nor zstd")


def decompress_payload(payload: bytes) -> str:
    """
    Fully decompress a batch payload back into its original text.

    Raises
    ------
    PayloadError
        If the payload is empty, truncated, corrupt, or not UTF-8.
    """
    if not payload:
        raise PayloadError("Empty payload")

    codec = detect_codec(payload)
    try:
        if codec == "gzip":
            raw = gzip.decompress(payload)
        else:
            dctx = zstandard.ZstdDecompressor()
            with dctx.stream_reader(io.BytesIO(payload)) as reader:
                raw = reader.read()
    except (OSError, EOFError, zlib.error, zstandard.ZstdError) as e:
        raise PayloadError(f"Cannot decompress {codec} payload: {e}") from e

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise PayloadError(f"Payload is not UTF-8 text: {e}") from e
