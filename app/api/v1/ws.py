"""
WebSocket subscription endpoint for lifecycle notifications.

Clients register with ``{"type": "register", "userId": ..., "role": ...}``
and then receive events as JSON text frames. Every outgoing frame goes
through one queue per connection, drained by a single sender task.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from ...core.auth import ROLE_ADMIN
from ...core.config import auth_disabled
from ...core.security import TokenError, decode_access_token
from ...services.notifications import SUBSCRIBER_QUEUE_SIZE, QueueDelivery, SubscriberRegistry, offer


router = APIRouter(tags=["ws"])
logger = logging.getLogger("ws")


async def _sender(websocket: WebSocket, queue: asyncio.Queue) -> None:
    try:
        while True:
            message = await queue.get()
            await websocket.send_text(json.dumps(message))
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.debug("WebSocket sender stopped: %s", exc)


def _claims_for(token: Optional[str]) -> Optional[dict]:
    if auth_disabled():
        return None
    return decode_access_token(token or "")


def _allowed(claims: Optional[dict], role: str, user_id: Optional[str]) -> bool:
    if claims is None:
        return True
    if claims.get("role") == ROLE_ADMIN:
        return True
    return role != ROLE_ADMIN and user_id == claims.get("user_id")


@router.websocket("/ws")
async def events_socket(websocket: WebSocket, token: Optional[str] = Query(None)) -> None:
    await websocket.accept()
    registry = websocket.app.state.notifier
    if not isinstance(registry, SubscriberRegistry):
        await websocket.send_text(json.dumps({"type": "error", "message": "Push notifications are disabled"}))
        await websocket.close(code=1008)
        return
    try:
        claims = _claims_for(token)
    except TokenError:
        await websocket.send_text(json.dumps({"type": "error", "message": "Invalid token"}))
        await websocket.close(code=1008)
        return

    key = uuid.uuid4().hex
    queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
    loop = asyncio.get_running_loop()
    sender = asyncio.create_task(_sender(websocket, queue))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                offer(queue, {"type": "error", "message": "Invalid JSON"})
                continue
            if not isinstance(message, dict):
                offer(queue, {"type": "error", "message": "Invalid message"})
                continue

            kind = message.get("type")
            if kind == "ping":
                offer(queue, {"type": "pong"})
            elif kind == "register":
                role = str(message.get("role") or "").strip().lower()
                user_id = message.get("userId")
                user_id = str(user_id) if user_id else None
                if not _allowed(claims, role, user_id):
                    offer(queue, {"type": "error", "message": "Not allowed to subscribe as requested"})
                    continue
                try:
                    registry.register(key, role=role, identifier=user_id, deliver=QueueDelivery(loop, queue))
                except ValueError:
                    offer(queue, {"type": "error", "message": f"Unknown role: {role}"})
                    continue
                offer(queue, {"type": "registered", "message": f"Registered as {role}"})
            else:
                offer(queue, {"type": "error", "message": f"Unknown message type: {kind}"})
    except WebSocketDisconnect:
        logger.debug("WebSocket disconnected key=%s", key)
    finally:
        registry.unregister(key)
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
