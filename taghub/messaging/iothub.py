# taghub/messaging/iothub.py
"""Device-to-cloud messages over the hub's MQTT endpoint."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional, cast

import paho.mqtt.client as mqtt

from taghub.core.errors import DeliveryError
from .credentials import ConnectionString, generate_sas_token, parse_connection_string

MQTT_PORT = 8883
API_VERSION = "2021-04-12"
DEFAULT_TOKEN_TTL_S = 24 * 3600
DEFAULT_PUBLISH_TIMEOUT_S = 10.0


def events_topic(device_id: str) -> str:
    return f"devices/{device_id}/messages/events/"


def mqtt_username(conn: ConnectionString) -> str:
    return f"{conn.host_name}/{conn.device_id}/?api-version={API_VERSION}"


class IoTHubMqttClient:
    """
    paho-mqtt based device client for one hub device.

    - connects lazily on the first send, with a fresh SAS token
    - reconnects with a new token once the current one is past half its TTL
    - send_event() publishes with QoS 1 and waits for the PUBACK
    """

    def __init__(
        self,
        connection_string: str,
        *,
        token_ttl_s: int = DEFAULT_TOKEN_TTL_S,
        publish_timeout_s: float = DEFAULT_PUBLISH_TIMEOUT_S,
        keepalive: int = 60,
        client_factory: Optional[Callable[..., mqtt.Client]] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        self._conn = parse_connection_string(connection_string)
        self._token_ttl_s = int(token_ttl_s)
        self._publish_timeout_s = float(publish_timeout_s)
        self._keepalive = int(keepalive)
        self._client_factory = client_factory or mqtt.Client
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._client: Optional[mqtt.Client] = None
        self._token_issued_at: Optional[float] = None

    @property
    def device_id(self) -> str:
        return self._conn.device_id

    @property
    def is_connected(self) -> bool:
        with self._lock:
            client = self._client
        return client is not None and client.is_connected()

    def send_event(self, payload: str) -> None:
        with self._lock:
            client = self._ensure_client()

        try:
            info = client.publish(events_topic(self._conn.device_id), payload, qos=1)
            info.wait_for_publish(timeout=self._publish_timeout_s)
        except (ValueError, RuntimeError) as e:
            raise DeliveryError(
                f"Publish to hub failed for '{self._conn.device_id}'.",
                hint=str(e),
                details={"device_id": self._conn.device_id},
            ) from None

        if info.rc != mqtt.MQTT_ERR_SUCCESS or not info.is_published():
            raise DeliveryError(
                f"Hub did not acknowledge message for '{self._conn.device_id}'.",
                hint=mqtt.error_string(info.rc),
                details={"device_id": self._conn.device_id, "rc": info.rc},
            )

    def close(self) -> None:
        with self._lock:
            client, self._client = self._client, None
            self._token_issued_at = None
        if client is not None:
            self._shutdown(client)

    # ---------------- Internal ----------------
    def _ensure_client(self) -> mqtt.Client:
        now = self._clock()
        if self._client is not None and self._token_issued_at is not None:
            if now - self._token_issued_at < self._token_ttl_s / 2:
                return self._client
            self._log.info("IOTHUB_TOKEN_REFRESH device=%s", self._conn.device_id)
            old, self._client = self._client, None
            self._shutdown(old)

        client = self._client_factory(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._conn.device_id,
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._log)
        client.username_pw_set(
            mqtt_username(self._conn),
            generate_sas_token(
                self._conn.resource_uri,
                self._conn.shared_access_key,
                ttl_s=self._token_ttl_s,
                now=now,
            ),
        )
        client.tls_set()

        def on_connect(_c: mqtt.Client, _userdata: Any, _flags: Any, reason_code: Any, _props: Any) -> None:
            if reason_code.is_failure:
                self._log.warning("IOTHUB_CONNECT_FAILED device=%s reason=%s", self._conn.device_id, reason_code)
                return
            self._log.info("IOTHUB_CONNECTED device=%s", self._conn.device_id)

        def on_disconnect(_c: mqtt.Client, _userdata: Any, _flags: Any, reason_code: Any, _props: Any) -> None:
            self._log.info("IOTHUB_DISCONNECTED device=%s reason=%s", self._conn.device_id, reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect

        try:
            client.connect(self._conn.host_name, MQTT_PORT, keepalive=self._keepalive)
        except OSError as e:
            raise DeliveryError(
                f"Could not reach hub '{self._conn.host_name}'.",
                hint=str(e),
                details={"device_id": self._conn.device_id},
            ) from None
        client.loop_start()

        self._client = client
        self._token_issued_at = now
        return client

    def _shutdown(self, client: mqtt.Client) -> None:
        try:
            client.disconnect()
        finally:
            client.loop_stop()
