"""MQTT publishing for live measurements."""

from .client_factory import create_mqtt_client
from .publisher import MQTTPublisher, NullPublisher, Publisher

__all__ = ["MQTTPublisher", "NullPublisher", "Publisher", "create_mqtt_client"]
