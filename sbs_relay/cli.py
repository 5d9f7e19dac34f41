"""
Command-line entry points.

Usage:
  # Read the receiver feed, batch, compress and publish to MQTT
  sbs-relay publish --config publisher.json

  # Replay a recorded feed instead of connecting to the receiver
  sbs-relay publish --config publisher.json --feed-file capture.sbs

  # Subscribe and store batches in hourly rotating CSV files
  sbs-relay store --config store.json

  # Subscribe and print every batch to stdout
  sbs-relay dump --config store.json
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional

from .adapters.mqtt import MqttTransport
from .config import PublisherConfig, StoreConfig, load_config
from .errors import FatalError, PayloadError
from .intake.feed_source import FileFeedSource, TcpFeedSource
from .pipeline.compress import decompress_payload
from .pipeline.emitter import BatchEmitter
from .pipeline.runner import run_ingest
from .storage.worker import StoreWorker
from .storage.writer import RotatingWriter
from .utils import LOGGER_NAME, init_logging

logger = logging.getLogger(LOGGER_NAME)

_POLL_SECONDS = 1.0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="sbs-relay", description="SBS1 feed to MQTT relay and store")
    sub = ap.add_subparsers(dest="command", required=True)

    pub = sub.add_parser("publish", help="Read the SBS1 feed and publish compressed batches")
    pub.add_argument("--config", default="config.json", help="Publisher JSON configuration")
    pub.add_argument("--feed-file", default=None, help="Replay this file ('-' for stdin) instead of the TCP feed")
    pub.add_argument("--log-level", default=None, help="Override the configured log level")

    store = sub.add_parser("store", help="Subscribe and write hourly rotating CSV files")
    store.add_argument("--config", default="config.json", help="Store JSON configuration")
    store.add_argument("--log-level", default=None, help="Override the configured log level")

    dump = sub.add_parser("dump", help="Subscribe and print batches to stdout")
    dump.add_argument("--config", default="config.json", help="Store JSON configuration")
    dump.add_argument("--log-level", default=None, help="Override the configured log level")

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    init_logging(args.log_level or "INFO")

    commands = {"publish": _cmd_publish, "store": _cmd_store, "dump": _cmd_dump}
    try:
        return commands[args.command](args)
    except FatalError as e:
        logger.error("%s", e)
        logger.error("Exiting now.")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down.")
        return 0


# === Commands ===


def _cmd_publish(args: argparse.Namespace) -> int:
    cfg = load_config(args.config, PublisherConfig)
    init_logging(args.log_level or cfg.log_level, cfg.log_file)
    logger.info("Starting SBS1 processor and publisher to MQTT")

    transport = MqttTransport(cfg.mqtt)
    transport.connect()
    try:
        if args.feed_file:
            source = FileFeedSource(args.feed_file, chunk_size=cfg.feed.read_chunk_bytes)
        else:
            tcp = TcpFeedSource(cfg.feed)
            tcp.connect()
            source = tcp
        try:
            emitter = BatchEmitter(publisher=transport, topic=cfg.mqtt.topic, codec=cfg.compression)
            run_ingest(
                source=source,
                emitter=emitter,
                window_seconds=cfg.batch_window_seconds,
                max_lines=cfg.max_batch_lines,
            )
        finally:
            source.close()
    finally:
        transport.disconnect()
    return 0


def _cmd_store(args: argparse.Namespace) -> int:
    cfg = load_config(args.config, StoreConfig)
    init_logging(args.log_level or cfg.log_level, cfg.log_file)
    logger.info("Starting the SBS1 store subscriber")

    transport = MqttTransport(cfg.mqtt)
    transport.connect()
    worker = StoreWorker(RotatingWriter(cfg.files_path, cfg.file_prefix))
    try:
        worker.start()
        transport.subscribe(cfg.mqtt.topic, worker.on_message)
        try:
            while not worker.wait(_POLL_SECONDS):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted; %d batches still queued", worker.pending())
            worker.stop(timeout=5.0)
    finally:
        transport.disconnect()

    if worker.error is not None:
        raise worker.error
    return 0


def _cmd_dump(args: argparse.Namespace) -> int:
    cfg = load_config(args.config, StoreConfig)
    init_logging(args.log_level or cfg.log_level, cfg.log_file)

    def on_payload(payload: bytes) -> None:
        try:
            text = decompress_payload(payload)
        except PayloadError as e:
            logger.error("Dropping undecodable batch: %s", e)
            return
        sys.stdout.write(text)
        sys.stdout.flush()

    transport = MqttTransport(cfg.mqtt)
    transport.connect()
    try:
        transport.subscribe(cfg.mqtt.topic, on_payload)
        while True:
            time.sleep(_POLL_SECONDS)
    finally:
        transport.disconnect()


if __name__ == "__main__":
    sys.exit(main())
