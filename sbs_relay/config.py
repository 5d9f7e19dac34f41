"""
Configuration schema for the publisher and the store/dump subscribers.

Each process loads exactly one of these from a JSON file at startup and
passes it (or the relevant sub-model) explicitly into the components it
builds. Nothing here is module-level mutable state.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigError

LogLevel = Literal["DEBUG", "INFO", "WARNING", "WARN", "ERROR"]

_M = TypeVar("_M", bound=BaseModel)


class MqttSettings(BaseModel):
    """Broker connection shared by the publisher and the subscribers."""

    model_config = ConfigDict(frozen=True)

    server_url: str = Field(
        default="tcp://localhost:1883",
        description="Broker URL; tcp:// or mqtt:// for plain, ssl://, tls:// or mqtts:// for TLS.",
    )
    client_id: str = Field(
        default="sbs-relay",
        description="MQTT client identifier; must be unique per broker.",
    )
    topic: str = Field(
        default="adsb/compact",
        description="Topic carrying compressed compact-format batches.",
    )
    qos: int = Field(default=0, ge=0, le=2, description="MQTT quality of service level.")
    username: Optional[str] = Field(default=None, description="Optional broker username.")
    password: Optional[str] = Field(default=None, description="Used only when username is set.")
    keepalive_seconds: int = Field(
        default=30,
        ge=1,
        description="Keepalive interval negotiated with the broker.",
    )


class FeedSettings(BaseModel):
    """Where the SBS1 text feed is read from."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="localhost", description="Receiver host (dump1090 or similar).")
    port: int = Field(default=30003, ge=1, le=65535, description="BaseStation output port.")
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="TCP connect timeout; reads block without a timeout.",
    )
    read_chunk_bytes: int = Field(
        default=4096,
        ge=64,
        description="Maximum bytes requested per socket read.",
    )


class PublisherConfig(BaseModel):
    """Ingest side: feed -> decode -> encode -> batch -> compress -> publish."""

    model_config = ConfigDict(frozen=True)

    mqtt: MqttSettings = Field(default_factory=MqttSettings)
    feed: FeedSettings = Field(default_factory=FeedSettings)

    # === Batching ===
    batch_window_seconds: int = Field(
        default=3,
        ge=1,
        description="Publish one batch each time this many seconds have elapsed.",
    )
    max_batch_lines: Optional[int] = Field(
        default=None,
        ge=1,
        description="Optional size cap; flush early once a batch holds this many lines. "
        "None keeps the purely time-based behavior.",
    )
    compression: Literal["gzip", "zstd"] = Field(
        default="gzip",
        description="Codec for batch payloads; consumers detect it from magic bytes.",
    )

    # === Logging ===
    log_level: LogLevel = Field(default="INFO")
    log_file: Optional[str] = Field(default=None, description="Optional rotating log file path.")


class StoreConfig(BaseModel):
    """Consumer side: subscribe -> decompress -> hourly rotating CSV files."""

    model_config = ConfigDict(frozen=True)

    mqtt: MqttSettings = Field(default_factory=MqttSettings)
    files_path: str = Field(default="data", description="Directory for hourly output files.")
    file_prefix: str = Field(
        default="fr",
        min_length=1,
        description="File name prefix: <prefix>-YYYYMMDD_HHMM.csv",
    )

    log_level: LogLevel = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)


def load_config(path: str | Path, model: Type[_M]) -> _M:
    """
    Read and validate a JSON configuration file.

    Raises
    ------
    ConfigError
        If the file cannot be read, is not JSON, or fails validation.
    """
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file '{p}': {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Configuration file '{p}' is not valid JSON: {e}") from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in '{p}': {e}") from e
