"""
Build paho MQTT clients that work with both paho-mqtt 1.x and 2.x.

paho 2.x requires a callback API version; we pin the legacy signature since
the publisher registers no callbacks that care about the difference.
"""

from __future__ import annotations

from typing import Any

import paho.mqtt.client as mqtt


def _legacy_callback_api_version() -> Any | None:
    callback_api_version = getattr(mqtt, "CallbackAPIVersion", None)
    if callback_api_version is None:
        return None
    for attr in ("VERSION1", "V1"):
        if hasattr(callback_api_version, attr):
            return getattr(callback_api_version, attr)
    return None


def create_mqtt_client(
    client_id: str = "",
    *,
    username: str | None = None,
    password: str | None = None,
    **kwargs: Any,
) -> mqtt.Client:
    """
    Create an MQTT client speaking MQTT v3.1.1.

    Args:
        client_id: Client identifier; empty lets the broker assign one.
        username: Optional broker user; ``password`` is only used with it.
        kwargs: Extra keyword arguments forwarded to ``mqtt.Client``.
    """
    client_kwargs: dict[str, Any] = {
        "client_id": client_id or "",
        "protocol": kwargs.pop("protocol", getattr(mqtt, "MQTTv311", 4)),
    }
    client_kwargs.update(kwargs)

    callback_value = _legacy_callback_api_version()
    if callback_value is not None:
        client_kwargs["callback_api_version"] = callback_value

    try:
        client = mqtt.Client(**client_kwargs)
    except TypeError:
        # paho 1.x does not know callback_api_version
        client_kwargs.pop("callback_api_version", None)
        client = mqtt.Client(**client_kwargs)

    if username:
        client.username_pw_set(username, password or None)
    return client
