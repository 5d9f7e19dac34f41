"""
sbs_relay: SBS1 (BaseStation) feed relay.

Public API (stable):
- PublisherConfig, StoreConfig, load_config   (configuration)
- decode_line, encode_record, encode_line     (SBS1 codec)
- BatchWindow, BatchEmitter, run_ingest       (ingest side)
- compress_text, decompress_payload           (batch payload codec)
- RotatingWriter, StoreWorker                 (store side)
- FeedSource, PublisherPort, SubscriberPort   (ports)
- DTOs: SBS1Record, RotationWindow

Transport adapters (MQTT, TCP feed) live in `sbs_relay.adapters` and
`sbs_relay.intake` and are imported on demand by the CLI.
"""

from __future__ import annotations

# Configuration
from .config import PublisherConfig, StoreConfig, load_config

# Errors
from .errors import ConfigError, FatalError, PayloadError, StorageError, TransportError

# Ports
from .ports import FeedSource, PublisherPort, SubscriberPort

# DTOs
from .dto import RotationWindow, SBS1Record

# Ingest side
from .pipeline.batching import BatchWindow, render_batch
from .pipeline.compress import compress_text, decompress_payload
from .pipeline.decoder import decode_line
from .pipeline.emitter import BatchEmitter
from .pipeline.encoder import encode_line, encode_record
from .pipeline.runner import IngestStats, run_ingest

# Store side
from .storage.worker import StoreWorker
from .storage.writer import RotatingWriter

__version__ = "1.0.0"

__all__ = [
    "PublisherConfig",
    "StoreConfig",
    "load_config",
    "ConfigError",
    "FatalError",
    "PayloadError",
    "StorageError",
    "TransportError",
    "FeedSource",
    "PublisherPort",
    "SubscriberPort",
    "RotationWindow",
    "SBS1Record",
    "BatchWindow",
    "render_batch",
    "compress_text",
    "decompress_payload",
    "decode_line",
    "BatchEmitter",
    "encode_line",
    "encode_record",
    "IngestStats",
    "run_ingest",
    "StoreWorker",
    "RotatingWriter",
]
