"""
Helpers for constructing MQTT clients that work across paho-mqtt 1.x and 2.x.

The 2.x releases add a callback API version flag; we select the legacy
v3.1.1 callback signature so handlers keep the ``(client, userdata, msg)``
shape while remaining compatible with older installations that do not
expose the enum.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

DEFAULT_RECONNECT_MIN_DELAY = 1
DEFAULT_RECONNECT_MAX_DELAY = 10


def _legacy_callback_api_version() -> Optional[Any]:
    callback_api_version = getattr(mqtt, "CallbackAPIVersion", None)
    if callback_api_version is None:
        return None
    for attr in ("VERSION1", "V1", "V311", "v311"):
        if hasattr(callback_api_version, attr):
            return getattr(callback_api_version, attr)
    return None


def create_mqtt_client(
    client_id: str = "",
    *,
    username: Optional[str] = None,
    password: Optional[str] = None,
    reconnect_max_delay: int = DEFAULT_RECONNECT_MAX_DELAY,
    **kwargs: Any,
) -> mqtt.Client:
    """
    Build an MQTT client ready for ``connect``.

    Args:
        client_id: Client identifier presented to the broker.
        username: Optional broker username; ``password`` is only used with it.
        password: Optional broker password.
        reconnect_max_delay: Upper bound (seconds) of paho's reconnect back-off.
        kwargs: Extra keyword arguments forwarded to the client constructor.
    """
    client_kwargs: Dict[str, Any] = {"client_id": client_id or ""}

    # Keep MQTT v3.1.1 protocol by default for broker compatibility.
    client_kwargs["protocol"] = kwargs.pop("protocol", getattr(mqtt, "MQTTv311", 4))
    client_kwargs.update(kwargs)

    callback_value = _legacy_callback_api_version()
    if callback_value is not None:
        client_kwargs["callback_api_version"] = callback_value

    try:
        client = mqtt.Client(**client_kwargs)
    except TypeError:
        # Older paho versions do not support callback_api_version; retry with basics.
        client_kwargs.pop("callback_api_version", None)
        client = mqtt.Client(**client_kwargs)

    if username:
        client.username_pw_set(username, password)
    client.reconnect_delay_set(
        min_delay=min(DEFAULT_RECONNECT_MIN_DELAY, reconnect_max_delay),
        max_delay=max(1, reconnect_max_delay),
    )
    return client
