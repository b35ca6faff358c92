"""
MQTT transport for lifecycle notifications.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Optional

import paho.mqtt.client as mqtt

from .notifications import EVENT_EDITED, Notifier, event_owner


_logger = logging.getLogger("mqtt_publisher")


class MqttNotifier(Notifier):
    """
    Publish each event to ``<prefix>/admin`` and, for edits, to
    ``<prefix>/user/<userId>``. A short-lived client is used per event;
    broker failures are logged and never raised.
    """

    transport = "mqtt"

    def __init__(
        self,
        *,
        host: str,
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        topic_prefix: str = "portal/events",
    ) -> None:
        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self.topic_prefix = topic_prefix.rstrip("/")

    def topics_for(self, event: dict) -> list[str]:
        topics = [f"{self.topic_prefix}/admin"]
        owner = event_owner(event)
        if event.get("type") == EVENT_EDITED and owner:
            topics.append(f"{self.topic_prefix}/user/{owner}")
        return topics

    def publish(self, event: dict) -> None:
        payload = json.dumps(event)
        topics = self.topics_for(event)
        try:
            client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=f"bg-portal-{uuid.uuid4().hex[:12]}")
            if self.username:
                client.username_pw_set(self.username, self.password)
            client.connect(self.host, self.port, keepalive=30)
            for topic in topics:
                client.publish(topic, payload, qos=1)
            client.disconnect()
        except Exception as exc:
            _logger.warning("Failed to publish %s to %s: %s", event.get("type"), ",".join(topics), exc)
