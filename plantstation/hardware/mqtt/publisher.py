"""
MQTT publisher for live measurements and watering events.

Connects lazily on first publish and reconnects whenever the broker was lost,
so a broker outage never blocks startup. Every publish either succeeds or
raises ``PublishError``; callers log the error and carry on.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

import paho.mqtt.client as mqtt

from plantstation.constants import MQTT_PUBLISH_TIMEOUT_SECONDS
from plantstation.domain.exceptions import PublishError
from plantstation.hardware.mqtt.client_factory import create_mqtt_client
from plantstation.utils.time import utc_now

logger = logging.getLogger(__name__)


class Publisher(Protocol):
    def publish(self, topic: str, qos: int, retained: bool, payload: str) -> None: ...

    def status(self) -> dict[str, Any]: ...

    def close(self) -> None: ...


@dataclass
class HealthStatus:
    """Connection and publish counters of the MQTT publisher."""

    is_connected: bool = False
    last_error: str | None = None
    last_error_time: datetime | None = None
    connection_attempts: int = 0
    successful_publishes: int = 0
    failed_publishes: int = 0

    @property
    def success_rate(self) -> float:
        total = self.successful_publishes + self.failed_publishes
        if total == 0:
            return 0.0
        return (self.successful_publishes / total) * 100

    def record_error(self, error: Exception) -> None:
        self.last_error = str(error)
        self.last_error_time = utc_now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": True,
            "is_connected": self.is_connected,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "connection_attempts": self.connection_attempts,
            "successful_publishes": self.successful_publishes,
            "failed_publishes": self.failed_publishes,
            "publish_success_rate": round(self.success_rate, 2),
        }


class MQTTPublisher:
    """Publish-only MQTT client."""

    def __init__(
        self,
        broker: str,
        port: int = 1883,
        *,
        client_id: str = "",
        username: str | None = None,
        password: str | None = None,
        timeout: float = MQTT_PUBLISH_TIMEOUT_SECONDS,
        client: mqtt.Client | None = None,
    ):
        self.broker = broker
        self.port = port
        self.timeout = float(timeout)
        self.client = client or create_mqtt_client(client_id=client_id, username=username, password=password)
        self.health_status = HealthStatus()
        self._lock = threading.Lock()
        self._loop_started = False

    def _ensure_connected(self) -> None:
        if self.client.is_connected():
            return
        logger.info("Connecting to MQTT broker %s:%s", self.broker, self.port)
        self.health_status.connection_attempts += 1
        try:
            if self._loop_started:
                self.client.reconnect()
            else:
                self.client.connect(self.broker, self.port, 60)
                self.client.loop_start()
                self._loop_started = True
        except (OSError, ValueError) as e:
            self.health_status.is_connected = False
            self.health_status.record_error(e)
            raise PublishError(f"Failed to connect to MQTT broker: {e}") from e
        self.health_status.is_connected = True

    def publish(self, topic: str, qos: int, retained: bool, payload: str) -> None:
        """Publish ``payload`` and wait up to ``timeout`` seconds for delivery.

        Raises:
            PublishError: connecting or publishing failed, or timed out.
        """
        with self._lock:
            try:
                self._ensure_connected()
                info = self.client.publish(topic, payload, qos=qos, retain=retained)
                if info.rc != mqtt.MQTT_ERR_SUCCESS:
                    raise PublishError(f"Failed to publish to {topic}: result code {info.rc}")
                info.wait_for_publish(timeout=self.timeout)
                if not info.is_published():
                    raise PublishError(f"Timeout while publishing to {topic}")
            except PublishError as e:
                self.health_status.failed_publishes += 1
                self.health_status.record_error(e)
                raise
            except (OSError, RuntimeError, ValueError) as e:
                self.health_status.failed_publishes += 1
                self.health_status.record_error(e)
                raise PublishError(f"Failed to publish to {topic}: {e}") from e
            self.health_status.successful_publishes += 1
            logger.debug("Published to %s: %s", topic, payload)

    def status(self) -> dict[str, Any]:
        return self.health_status.to_dict()

    def close(self) -> None:
        with self._lock:
            if not self._loop_started:
                return
            try:
                self.client.disconnect()
                self.client.loop_stop()
            except (OSError, RuntimeError) as e:
                logger.warning("Error disconnecting from MQTT broker: %s", e)
            self._loop_started = False
            self.health_status.is_connected = False
            logger.info("Disconnected from MQTT broker.")


class NullPublisher:
    """Used when no broker is configured."""

    def publish(self, topic: str, qos: int, retained: bool, payload: str) -> None:
        logger.debug("MQTT disabled, dropping %s: %s", topic, payload)

    def status(self) -> dict[str, Any]:
        return {"enabled": False}

    def close(self) -> None:
        return None
