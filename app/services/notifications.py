"""
Lifecycle notifications (WebSocket push, MQTT push, or none).

Events are plain dicts::

    {"type": "new_image_upload" | "image_edited", "data": {...}, "timestamp": "..."}

`new_image_upload` goes to admins; `image_edited` goes to admins and to
subscribers registered with the record's ``userId``. Delivery is
best-effort and at-most-once; nothing is replayed.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Hashable, Optional

from ..core.auth import ROLE_ADMIN, ROLES
from ..core.config import Settings
from ..schemas.image_request import request_summary


logger = logging.getLogger("notifications")

EVENT_NEW_UPLOAD = "new_image_upload"
EVENT_EDITED = "image_edited"
EVENT_TYPES = (EVENT_NEW_UPLOAD, EVENT_EDITED)

TRANSPORTS = ("websocket", "mqtt", "none")


def build_event(kind: str, record) -> dict:
    if kind not in EVENT_TYPES:
        raise ValueError(f"Unknown event type: {kind}")
    return {
        "type": kind,
        "data": request_summary(record),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def event_owner(event: dict) -> Optional[str]:
    if event.get("type") != EVENT_EDITED:
        return None
    data = event.get("data") or {}
    owner = data.get("userId")
    return str(owner) if owner else None


class Notifier:
    """Push capability handed to the lifecycle service."""

    transport = "none"

    def publish(self, event: dict) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None


class NullNotifier(Notifier):
    """Pull-only deployments: clients poll the list endpoints."""

    def publish(self, event: dict) -> None:
        logger.debug("Notification dropped (no push transport) type=%s", event.get("type"))


@dataclass
class Subscription:
    key: Hashable
    role: str
    identifier: Optional[str]
    deliver: Callable[[dict], Any]


class SubscriberRegistry(Notifier):
    """
    In-process registry of push subscribers, keyed by connection.

    Several connections may register the same identifier; each one is an
    independent subscriber. A subscriber whose ``deliver`` raises is
    dropped.
    """

    transport = "websocket"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: dict[Hashable, Subscription] = {}

    def register(self, key: Hashable, *, role: str, identifier: Optional[str], deliver: Callable[[dict], Any]) -> Subscription:
        role = (role or "").strip().lower()
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role!r}")
        sub = Subscription(key=key, role=role, identifier=str(identifier) if identifier else None, deliver=deliver)
        with self._lock:
            self._subs[key] = sub
        logger.info("Subscriber registered role=%s identifier=%s", sub.role, sub.identifier)
        return sub

    def unregister(self, key: Hashable) -> None:
        with self._lock:
            sub = self._subs.pop(key, None)
        if sub is not None:
            logger.info("Subscriber removed role=%s identifier=%s", sub.role, sub.identifier)

    def count(self) -> int:
        with self._lock:
            return len(self._subs)

    def targets(self, event: dict) -> list[Subscription]:
        owner = event_owner(event)
        with self._lock:
            subs = list(self._subs.values())
        return [s for s in subs if s.role == ROLE_ADMIN or (owner is not None and s.identifier == owner)]

    def publish(self, event: dict) -> None:
        delivered = 0
        for sub in self.targets(event):
            try:
                sub.deliver(event)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "Dropping subscriber after failed delivery role=%s identifier=%s err=%s",
                    sub.role,
                    sub.identifier,
                    exc,
                )
                self.unregister(sub.key)
        logger.debug("Event delivered type=%s subscribers=%s", event.get("type"), delivered)


SUBSCRIBER_QUEUE_SIZE = 100


def offer(queue: asyncio.Queue, message: dict) -> bool:
    """Enqueue without blocking; a full queue drops the message."""
    try:
        queue.put_nowait(message)
    except asyncio.QueueFull:
        logger.warning("Subscriber queue full; dropping type=%s", message.get("type"))
        return False
    return True


class QueueDelivery:
    """Hand events from worker threads to a connection's bounded asyncio queue."""

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue) -> None:
        self.loop = loop
        self.queue = queue

    def __call__(self, event: dict) -> None:
        if self.loop.is_closed():
            raise RuntimeError("event loop closed")
        self.loop.call_soon_threadsafe(offer, self.queue, event)


def build_notifier(settings: Settings) -> Notifier:
    transport = (settings.notify_transport or "websocket").strip().lower()
    if transport == "mqtt":
        from .mqtt_publisher import MqttNotifier

        return MqttNotifier(
            host=settings.mqtt_broker_host,
            port=settings.mqtt_broker_port,
            username=settings.mqtt_username,
            password=settings.mqtt_password,
            topic_prefix=settings.mqtt_topic_prefix,
        )
    if transport == "none":
        return NullNotifier()
    if transport != "websocket":
        logger.error("Unsupported NOTIFY_TRANSPORT=%s; push notifications disabled", transport)
        return NullNotifier()
    return SubscriberRegistry()
