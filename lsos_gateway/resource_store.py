"""
Resource Store - Centralized resource persistence.

Handles CRUD for orders, drivers, vehicles, places and webhook endpoints.
Each resource lives in a Redis hash at `{resource}:{public_id}`.
"""

from __future__ import annotations

import json
from typing import Callable, Generic, TypeVar

import redis.asyncio as redis

from lsos_gateway.errors import NotFound
from lsos_gateway.helpers import deserializers, serializers
from lsos_gateway.models import Driver, Order, Place, Resource, Vehicle, WebhookEndpoint, WebhookRequestLog

T = TypeVar("T", bound=Resource)

REQUEST_LOG_LIMIT = 100


class ResourceStore(Generic[T]):
    def __init__(self, redis_client: redis.Redis, resource: str,
                 to_dict: Callable[[T], dict], from_dict: Callable[[dict], T]):
        """Initialize the store with a Redis client and the resource codec"""
        self.redis = redis_client
        self.resource = resource
        self.to_dict = to_dict
        self.from_dict = from_dict

    def key(self, public_id: str) -> str:
        return f"{self.resource}:{public_id}"

    async def save(self, item: T) -> T:
        await self.redis.hset(self.key(item.public_id), mapping=serializers.to_redis_mapping(self.to_dict(item)))
        return item

    async def get(self, public_id: str) -> T | None:
        data = deserializers.from_redis_mapping(await self.redis.hgetall(self.key(public_id)))
        return self.from_dict(data) if data is not None else None

    async def require(self, public_id: str) -> T:
        """Fetch a resource or raise NotFound"""
        item = await self.get(public_id)
        if item is None:
            raise NotFound.resource(self.resource, public_id)
        return item

    async def exists(self, public_id: str) -> bool:
        return await self.redis.exists(self.key(public_id)) > 0

    async def delete(self, public_id: str) -> bool:
        return await self.redis.delete(self.key(public_id)) > 0

    async def list_all(self) -> list[T]:
        keys = [k async for k in self.redis.scan_iter(match=f"{self.resource}:*")]
        if not keys:
            return []
        pipe = self.redis.pipeline()
        for key in keys:
            pipe.hgetall(key)
        return [self.from_dict(d) for raw in await pipe.execute()
                if (d := deserializers.from_redis_mapping(raw)) is not None]


class WebhookStore(ResourceStore[WebhookEndpoint]):
    """Webhook endpoints plus their delivery log at `webhook_log:{public_id}`"""

    def __init__(self, redis_client: redis.Redis):
        super().__init__(redis_client, WebhookEndpoint.resource,
                         serializers.webhook_to_storage_dict, deserializers.dict_to_webhook)

    def log_key(self, public_id: str) -> str:
        return f"webhook_log:{public_id}"

    async def append_log(self, log: WebhookRequestLog) -> None:
        key = self.log_key(log.webhook_id)
        pipe = self.redis.pipeline()
        pipe.lpush(key, json.dumps(serializers.request_log_to_dict(log)))
        pipe.ltrim(key, 0, REQUEST_LOG_LIMIT - 1)
        await pipe.execute()

    async def get_logs(self, public_id: str) -> list[WebhookRequestLog]:
        """Newest first"""
        return [deserializers.dict_to_request_log(json.loads(raw))
                for raw in await self.redis.lrange(self.log_key(public_id), 0, -1)]

    async def delete(self, public_id: str) -> bool:
        deleted = await super().delete(public_id)
        await self.redis.delete(self.log_key(public_id))
        return deleted


class Stores:
    """All resource stores sharing one Redis client"""

    def __init__(self, redis_client: redis.Redis):
        self.orders: ResourceStore[Order] = ResourceStore(
            redis_client, Order.resource, serializers.order_to_dict, deserializers.dict_to_order)
        self.drivers: ResourceStore[Driver] = ResourceStore(
            redis_client, Driver.resource, serializers.driver_to_dict, deserializers.dict_to_driver)
        self.vehicles: ResourceStore[Vehicle] = ResourceStore(
            redis_client, Vehicle.resource, serializers.vehicle_to_dict, deserializers.dict_to_vehicle)
        self.places: ResourceStore[Place] = ResourceStore(
            redis_client, Place.resource, serializers.place_to_dict, deserializers.dict_to_place)
        self.webhooks = WebhookStore(redis_client)
