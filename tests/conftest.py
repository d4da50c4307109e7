"""
Shared fixtures: in-memory stand-ins for the Redis-backed stores.

The stand-ins expose the same coroutine interface as ResourceStore and
WebhookStore so the controller and the REST routers can be exercised
without a Redis server.
"""
from __future__ import annotations

import copy
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from lsos_gateway.errors import NotFound
from lsos_gateway.event_bus import EventBus
from lsos_gateway.models import Event


class InMemoryStore:
    def __init__(self, resource: str):
        self.resource = resource
        self.items: dict = {}
        self.logs: dict[str, list] = {}

    async def save(self, item):
        # Copy so callers cannot mutate stored state without saving
        self.items[item.public_id] = copy.deepcopy(item)
        return item

    async def get(self, public_id):
        item = self.items.get(public_id)
        return copy.deepcopy(item) if item is not None else None

    async def require(self, public_id):
        item = await self.get(public_id)
        if item is None:
            raise NotFound.resource(self.resource, public_id)
        return item

    async def exists(self, public_id):
        return public_id in self.items

    async def delete(self, public_id):
        self.logs.pop(public_id, None)
        return self.items.pop(public_id, None) is not None

    async def list_all(self):
        return [copy.deepcopy(item) for item in self.items.values()]

    async def append_log(self, log):
        self.logs.setdefault(log.webhook_id, []).insert(0, log)

    async def get_logs(self, public_id):
        return list(self.logs.get(public_id, []))


def make_stores() -> SimpleNamespace:
    return SimpleNamespace(
        orders=InMemoryStore("order"),
        drivers=InMemoryStore("driver"),
        vehicles=InMemoryStore("vehicle"),
        places=InMemoryStore("place"),
        webhooks=InMemoryStore("webhook"),
    )


class RecordingEventBus:
    """EventBus stand-in that records emitted events instead of publishing"""

    def __init__(self):
        self.emitted: list[Event] = []

    async def emit(self, event_type, resource, data):
        event = Event(event=event_type, data=data)
        self.emitted.append(event)
        return event

    def names(self) -> list[str]:
        return [e.event.value for e in self.emitted]


@pytest.fixture
def stores():
    return make_stores()


@pytest.fixture
def events():
    return RecordingEventBus()


@pytest.fixture
def mock_redis():
    r = AsyncMock()
    r.publish.return_value = 1
    return r


@pytest.fixture
def event_bus(mock_redis):
    return EventBus(mock_redis)
