"""
GraphQL Subscription resolvers for the LSOS gateway.

Handles real-time updates via Redis pub/sub for orders and drivers.
"""
from __future__ import annotations

from typing import AsyncGenerator, Awaitable, Callable

import redis.asyncio as redis
import strawberry

from lsos_gateway.api.types import Driver, Order
from lsos_gateway.auth import Authenticator, parse_bearer
from lsos_gateway.event_bus import resource_channel
from lsos_gateway.models import ApiCredential
from lsos_gateway.resource_store import Stores


async def authorize(info: strawberry.types.Info, resource: str) -> ApiCredential:
    """Authenticate the bearer credential of the HTTP request or WebSocket"""
    authenticator: Authenticator = info.context["authenticator"]
    connection = info.context["request"]
    token = parse_bearer(connection.headers.get("authorization")) or connection.query_params.get("token")
    credential = await authenticator.authenticate(token)
    authenticator.authorize(credential, resource, "read")
    return credential


async def _watch(r: redis.Redis, channel: str, load: Callable[[], Awaitable]) -> AsyncGenerator:
    """Yield the current state, then the fresh state after every message on channel"""
    pubsub = r.pubsub()
    await pubsub.subscribe(channel)
    try:
        yield await load()
        async for message in pubsub.listen():
            if message["type"] == "message":
                yield await load()
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()


@strawberry.type
class Subscription:

    @strawberry.subscription
    async def order_updates(self, info: strawberry.types.Info, id: strawberry.ID) -> AsyncGenerator[Order | None, None]:
        """
        Subscribe to updates for a specific order.

        Yields:
            Order state whenever one of its events is published
        """
        await authorize(info, "orders")
        stores: Stores = info.context["stores"]

        async def load() -> Order | None:
            order = await stores.orders.get(id)
            return Order.from_model(order) if order else None

        async for order in _watch(info.context["redis"], resource_channel("order", id), load):
            yield order

    @strawberry.subscription
    async def driver_updates(self, info: strawberry.types.Info, id: strawberry.ID) -> AsyncGenerator[Driver | None, None]:
        """
        Subscribe to updates for a specific driver, including location pings.

        Yields:
            Driver state whenever one of its events is published
        """
        await authorize(info, "drivers")
        stores: Stores = info.context["stores"]

        async def load() -> Driver | None:
            driver = await stores.drivers.get(id)
            return Driver.from_model(driver) if driver else None

        async for driver in _watch(info.context["redis"], resource_channel("driver", id), load):
            yield driver
