"""
Event bus: turns state changes into events.

Each event is published as JSON on Redis pub/sub (the resource channel
`{resource}.{public_id}` and the `events` firehose) and queued for webhook
delivery. The socket relay and GraphQL subscriptions listen on those channels.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import redis.asyncio as redis
from loguru import logger

from lsos_gateway.enums import WebhookEvent
from lsos_gateway.helpers.serializers import event_to_dict
from lsos_gateway.models import Event, Resource

if TYPE_CHECKING:
    from lsos_gateway.webhook_dispatcher import WebhookDispatcher

FIREHOSE_CHANNEL = "events"


def resource_channel(resource: str, public_id: str) -> str:
    return f"{resource}.{public_id}"


class EventBus:
    def __init__(self, redis_client: redis.Redis, dispatcher: WebhookDispatcher | None = None):
        self.redis = redis_client
        self.dispatcher = dispatcher

    async def emit(self, event_type: WebhookEvent, resource: Resource, data: dict[str, Any]) -> Event:
        """Publish an event about `resource` whose payload is `data`"""
        event = Event(event=event_type, data=data)
        message = json.dumps(event_to_dict(event))

        await self.redis.publish(resource_channel(resource.resource, resource.public_id), message)
        await self.redis.publish(FIREHOSE_CHANNEL, message)
        logger.debug("Published {} {} for {}", event.event.value, event.id, resource.public_id)

        if self.dispatcher is not None:
            self.dispatcher.enqueue(event)
        return event
