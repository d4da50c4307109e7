"""
Combined GraphQL schema for the LSOS gateway.

Read-only queries over the resource stores plus the live subscriptions in
subscriptions.py, authenticated with the same bearer credentials as REST.
"""
from __future__ import annotations

import strawberry

from lsos_gateway.api.subscriptions import Subscription, authorize
from lsos_gateway.api.types import Driver, Order, Place, Vehicle
from lsos_gateway.query import sort_items
from lsos_gateway.resource_store import Stores

NEWEST_FIRST = [("created_at", True)]


@strawberry.type
class Query:

    @strawberry.field
    async def order(self, info: strawberry.types.Info, id: strawberry.ID) -> Order | None:
        """Get a specific order by public id."""
        await authorize(info, "orders")
        stores: Stores = info.context["stores"]
        order = await stores.orders.get(id)
        return Order.from_model(order) if order else None

    @strawberry.field
    async def orders(self, info: strawberry.types.Info) -> list[Order]:
        """Get all orders, newest first."""
        await authorize(info, "orders")
        stores: Stores = info.context["stores"]
        return [Order.from_model(o) for o in sort_items(await stores.orders.list_all(), NEWEST_FIRST)]

    @strawberry.field
    async def driver(self, info: strawberry.types.Info, id: strawberry.ID) -> Driver | None:
        await authorize(info, "drivers")
        stores: Stores = info.context["stores"]
        driver = await stores.drivers.get(id)
        return Driver.from_model(driver) if driver else None

    @strawberry.field
    async def drivers(self, info: strawberry.types.Info) -> list[Driver]:
        await authorize(info, "drivers")
        stores: Stores = info.context["stores"]
        return [Driver.from_model(d) for d in sort_items(await stores.drivers.list_all(), NEWEST_FIRST)]

    @strawberry.field
    async def vehicles(self, info: strawberry.types.Info) -> list[Vehicle]:
        await authorize(info, "vehicles")
        stores: Stores = info.context["stores"]
        return [Vehicle.from_model(v) for v in sort_items(await stores.vehicles.list_all(), NEWEST_FIRST)]

    @strawberry.field
    async def places(self, info: strawberry.types.Info) -> list[Place]:
        await authorize(info, "places")
        stores: Stores = info.context["stores"]
        return [Place.from_model(p) for p in sort_items(await stores.places.list_all(), NEWEST_FIRST)]


schema = strawberry.Schema(
    query=Query,
    subscription=Subscription,
)
