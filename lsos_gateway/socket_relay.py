"""
Socket relay: WebSocket pub/sub between Redis channels and consoles.

Clients send {"action": "subscribe" | "unsubscribe" | "publish", "channel", "data"}
and receive acknowledgements plus {"event": "message", "channel", "data"} for
every message published on a subscribed channel.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

import redis.asyncio as redis
from fastapi import WebSocket, WebSocketDisconnect
from loguru import logger

from lsos_gateway.auth import Authenticator, parse_bearer
from lsos_gateway.enums import SocketAction
from lsos_gateway.errors import ApiError

CHANNEL_PATTERN = re.compile(r"^[A-Za-z0-9_.:\-]{1,128}$")
UNAUTHORIZED_CLOSE_CODE = 4401


class SocketProtocolError(Exception):
    pass


def parse_message(raw: str) -> tuple[SocketAction, str, Any]:
    """Validate a client message and return (action, channel, data)"""
    try:
        message = json.loads(raw)
    except json.JSONDecodeError as e:
        raise SocketProtocolError("Message is not valid JSON") from e
    if not isinstance(message, dict):
        raise SocketProtocolError("Message must be a JSON object")
    try:
        action = SocketAction(message.get("action"))
    except ValueError as e:
        raise SocketProtocolError(f"Unknown action {message.get('action')!r}") from e
    channel = message.get("channel")
    if not isinstance(channel, str) or not CHANNEL_PATTERN.match(channel):
        raise SocketProtocolError("Invalid channel name")
    return action, channel, message.get("data")


class SocketSession:
    """One connected client and its Redis subscriptions"""

    def __init__(self, websocket: WebSocket, redis_client: redis.Redis):
        self.websocket = websocket
        self.redis = redis_client
        self.pubsub = redis_client.pubsub()

    async def handle(self, raw: str) -> None:
        try:
            action, channel, data = parse_message(raw)
        except SocketProtocolError as e:
            await self.websocket.send_json({"event": "error", "message": str(e)})
            return

        if action == SocketAction.SUBSCRIBE:
            await self.pubsub.subscribe(channel)
            await self.websocket.send_json({"event": "subscribed", "channel": channel})
        elif action == SocketAction.UNSUBSCRIBE:
            await self.pubsub.unsubscribe(channel)
            await self.websocket.send_json({"event": "unsubscribed", "channel": channel})
        else:
            await self.redis.publish(channel, json.dumps(data))
            await self.websocket.send_json({"event": "published", "channel": channel})

    async def relay(self) -> None:
        """Forward Redis messages to the client until cancelled"""
        while True:
            if not self.pubsub.subscribed:
                await asyncio.sleep(0.05)
                continue
            message = await self.pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
            if message is None or message["type"] != "message":
                continue
            try:
                data = json.loads(message["data"])
            except (TypeError, json.JSONDecodeError):
                data = message["data"]
            await self.websocket.send_json({"event": "message", "channel": message["channel"], "data": data})

    async def close(self) -> None:
        await self.pubsub.unsubscribe()
        await self.pubsub.aclose()


async def _receive_text(websocket: WebSocket) -> str | None:
    """Next text frame, or None for a binary frame"""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    return message.get("text")


async def serve_socket(websocket: WebSocket, redis_client: redis.Redis, authenticator: Authenticator) -> None:
    token = websocket.query_params.get("token") or parse_bearer(websocket.headers.get("authorization"))
    try:
        credential = await authenticator.authenticate(token)
    except ApiError as e:
        # Accept first so the close code reaches the client
        await websocket.accept()
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE, reason=e.message)
        return

    await websocket.accept()
    logger.info("Socket connected for credential {}", credential.name)
    session = SocketSession(websocket, redis_client)
    relay_task = asyncio.create_task(session.relay())
    try:
        while True:
            raw = await _receive_text(websocket)
            if raw is None:
                await websocket.send_json({"event": "error", "message": "Binary frames are not supported"})
                continue
            await session.handle(raw)
    except WebSocketDisconnect:
        logger.info("Socket disconnected for credential {}", credential.name)
    finally:
        relay_task.cancel()
        try:
            await relay_task
        except (asyncio.CancelledError, WebSocketDisconnect):
            pass
        except Exception:
            logger.exception("Socket relay failed for credential {}", credential.name)
        finally:
            await session.close()
