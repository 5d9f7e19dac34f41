"""
MQTT adapter implementing PublisherPort and SubscriberPort over paho-mqtt.

- Publishing is QoS as configured (0 by default), fire-and-forget: a
  publish that the client cannot queue is logged and dropped.
- Subscriptions are (re)issued from the connect callback, so they survive
  the automatic reconnects of paho's network loop.
- Failing to connect at startup is fatal (TransportError).

Broker URLs: tcp://host[:port] or mqtt://... for plain connections,
ssl://, tls:// or mqtts:// for TLS. TLS does not verify the broker
certificate, matching how the existing deployments are set up.
"""

from __future__ import annotations

import logging
import ssl
import threading
from typing import Dict, Optional, Tuple
from urllib.parse import urlsplit

import paho.mqtt.client as mqtt

from ..config import MqttSettings
from ..errors import ConfigError, TransportError
from ..ports import PayloadHandler, PublisherPort, SubscriberPort

logger = logging.getLogger(__name__)

_PLAIN_SCHEMES = ("tcp", "mqtt")
_TLS_SCHEMES = ("ssl", "tls", "mqtts")
DEFAULT_PORT = 1883
DEFAULT_TLS_PORT = 8883


def parse_broker_url(url: str) -> Tuple[str, int, bool]:
    """
    Split a broker URL into (host, port, use_tls).

    Raises ConfigError for unknown schemes, a missing host, or a bad port.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    if scheme in _PLAIN_SCHEMES:
        use_tls = False
    elif scheme in _TLS_SCHEMES:
        use_tls = True
    else:
        raise ConfigError(f"Unsupported broker URL scheme in {url!r}")

    if not parts.hostname:
        raise ConfigError(f"Broker URL {url!r} has no host")

    try:
        port = parts.port
    except ValueError as e:
        raise ConfigError(f"Broker URL {url!r} has an invalid port: {e}") from e

    if port is None:
        port = DEFAULT_TLS_PORT if use_tls else DEFAULT_PORT
    return parts.hostname, port, use_tls


class MqttTransport(PublisherPort, SubscriberPort):
    """
    One paho client used either to publish batches or to receive them.

    Parameters
    ----------
    settings : MqttSettings
        Broker URL, credentials, client id, QoS, keepalive.
    """

    def __init__(self, settings: MqttSettings) -> None:
        self._settings = settings
        self._host, self._port, use_tls = parse_broker_url(settings.server_url)

        client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=settings.client_id,
            clean_session=True,
        )
        if settings.username:
            client.username_pw_set(settings.username, settings.password or None)
        if use_tls:
            client.tls_set(cert_reqs=ssl.CERT_NONE)
            client.tls_insecure_set(True)

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        self._client = client

        self._connected = threading.Event()
        self._connect_reason: Optional[str] = None
        self._handlers: Dict[str, PayloadHandler] = {}
        self._lock = threading.Lock()

    # ---------------------------- Connection -----------------------------

    def connect(self, timeout: float = 10.0) -> None:
        """Connect and start the background network loop."""
        logger.info("Connecting to MQTT: %s", self._settings.server_url)
        try:
            self._client.connect(self._host, self._port, keepalive=self._settings.keepalive_seconds)
        except (OSError, ValueError) as e:
            raise TransportError(f"Error connecting to MQTT {self._settings.server_url}: {e}") from e

        self._client.loop_start()
        if not self._connected.wait(timeout):
            self._client.loop_stop()
            raise TransportError(f"Timed out connecting to MQTT {self._settings.server_url}")
        if self._connect_reason is not None:
            self._client.loop_stop()
            raise TransportError(f"MQTT broker refused connection: {self._connect_reason}")
        logger.info("Connected to MQTT server: %s", self._settings.server_url)

    def disconnect(self) -> None:
        """Disconnect and stop the network loop."""
        self._client.disconnect()
        self._client.loop_stop()

    # ------------------------------- Ports --------------------------------

    def publish(self, topic: str, payload: bytes) -> None:
        info = self._client.publish(topic, payload, qos=self._settings.qos, retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(
                "Publish of %d bytes to %s dropped: %s",
                len(payload),
                topic,
                mqtt.error_string(info.rc),
            )

    def subscribe(self, topic: str, handler: PayloadHandler) -> None:
        with self._lock:
            self._handlers[topic] = handler
        if self._connected.is_set() and self._connect_reason is None:
            result, _mid = self._client.subscribe(topic, qos=self._settings.qos)
            if result != mqtt.MQTT_ERR_SUCCESS:
                raise TransportError(f"Cannot subscribe to {topic}: {mqtt.error_string(result)}")
            logger.info("Subscribed to %s", topic)

    # ----------------------------- Callbacks ------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self._connect_reason = str(reason_code)
            logger.error("MQTT connection refused: %s", reason_code)
            self._connected.set()
            return

        self._connect_reason = None
        with self._lock:
            topics = list(self._handlers)
        for topic in topics:
            result, _mid = client.subscribe(topic, qos=self._settings.qos)
            if result != mqtt.MQTT_ERR_SUCCESS:
                logger.error("Cannot subscribe to %s: %s", topic, mqtt.error_string(result))
            else:
                logger.info("Subscribed to %s", topic)
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.warning("Disconnected from MQTT (%s); paho will reconnect", reason_code)
        else:
            logger.info("Disconnected from MQTT")

    def _on_message(self, client, userdata, message) -> None:
        with self._lock:
            handler = self._handlers.get(message.topic)
            if handler is None:
                # Wildcard subscriptions (e.g. "adsb/#")
                for pattern, h in self._handlers.items():
                    if mqtt.topic_matches_sub(pattern, message.topic):
                        handler = h
                        break
        if handler is None:
            logger.debug("No handler for topic %s", message.topic)
            return
        try:
            handler(message.payload)
        except Exception:
            # An exception here would kill paho's network thread.
            logger.exception("Handler for %s failed", message.topic)
