"""
GraphQL type definitions for the LSOS gateway.

These @strawberry.type classes mirror the dataclasses in models.py. References
to other resources are kept private and resolved through the stores.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import strawberry
from strawberry.scalars import JSON

from lsos_gateway import enums
from lsos_gateway import models

if TYPE_CHECKING:
    from lsos_gateway.resource_store import Stores

OrderStatus = strawberry.enum(enums.OrderStatus)
DriverStatus = strawberry.enum(enums.DriverStatus)
VehicleStatus = strawberry.enum(enums.VehicleStatus)


@strawberry.type
class Point:
    latitude: float
    longitude: float

    @staticmethod
    def from_model(point: models.Point | None) -> Point | None:
        return Point(latitude=point.latitude, longitude=point.longitude) if point else None


@strawberry.type
class Place:
    id: strawberry.ID
    name: str
    street1: str | None
    city: str | None
    postal_code: str | None
    country: str | None
    location: Point | None
    meta: JSON

    @staticmethod
    def from_model(place: models.Place) -> Place:
        return Place(
            id=strawberry.ID(place.public_id), name=place.name, street1=place.street1, city=place.city,
            postal_code=place.postal_code, country=place.country,
            location=Point.from_model(place.location), meta=place.meta,
        )


@strawberry.type
class Vehicle:
    id: strawberry.ID
    make: str | None
    model: str | None
    year: int | None
    plate_number: str | None
    status: VehicleStatus
    location: Point | None

    @staticmethod
    def from_model(vehicle: models.Vehicle) -> Vehicle:
        return Vehicle(
            id=strawberry.ID(vehicle.public_id), make=vehicle.make, model=vehicle.model, year=vehicle.year,
            plate_number=vehicle.plate_number, status=vehicle.status, location=Point.from_model(vehicle.location),
        )


@strawberry.type
class Driver:
    id: strawberry.ID
    name: str
    email: str | None
    phone: str | None
    status: DriverStatus
    online: bool
    location: Point | None
    heading: float | None
    speed: float | None
    location_updated_at: datetime | None
    # Private variables
    vehicle_id: strawberry.Private[str | None]
    current_order_id: strawberry.Private[str | None]

    @strawberry.field
    async def vehicle(self, info: strawberry.types.Info) -> Vehicle | None:
        if self.vehicle_id is None:
            return None
        stores: Stores = info.context["stores"]
        vehicle = await stores.vehicles.get(self.vehicle_id)
        return Vehicle.from_model(vehicle) if vehicle else None

    @strawberry.field
    async def current_order(self, info: strawberry.types.Info) -> Order | None:
        if self.current_order_id is None:
            return None
        stores: Stores = info.context["stores"]
        order = await stores.orders.get(self.current_order_id)
        return Order.from_model(order) if order else None

    @staticmethod
    def from_model(driver: models.Driver) -> Driver:
        return Driver(
            id=strawberry.ID(driver.public_id), name=driver.name, email=driver.email, phone=driver.phone,
            status=driver.status, online=driver.online, location=Point.from_model(driver.location),
            heading=driver.heading, speed=driver.speed, location_updated_at=driver.location_updated_at,
            vehicle_id=driver.vehicle, current_order_id=driver.current_order,
        )


@strawberry.type
class Order:
    id: strawberry.ID
    tracking_number: str
    type: str
    status: OrderStatus
    notes: str | None
    scheduled_at: datetime | None
    dispatched_at: datetime | None
    started_at: datetime | None
    completed_at: datetime | None
    canceled_at: datetime | None
    created_at: datetime
    updated_at: datetime
    # Private variables
    pickup_id: strawberry.Private[str]
    dropoff_id: strawberry.Private[str]
    driver_id: strawberry.Private[str | None]

    @strawberry.field
    async def pickup(self, info: strawberry.types.Info) -> Place | None:
        stores: Stores = info.context["stores"]
        place = await stores.places.get(self.pickup_id)
        return Place.from_model(place) if place else None

    @strawberry.field
    async def dropoff(self, info: strawberry.types.Info) -> Place | None:
        stores: Stores = info.context["stores"]
        place = await stores.places.get(self.dropoff_id)
        return Place.from_model(place) if place else None

    @strawberry.field
    async def driver(self, info: strawberry.types.Info) -> Driver | None:
        if self.driver_id is None:
            return None
        stores: Stores = info.context["stores"]
        driver = await stores.drivers.get(self.driver_id)
        return Driver.from_model(driver) if driver else None

    @staticmethod
    def from_model(order: models.Order) -> Order:
        return Order(
            id=strawberry.ID(order.public_id), tracking_number=order.tracking_number, type=order.type,
            status=order.status, notes=order.notes, scheduled_at=order.scheduled_at,
            dispatched_at=order.dispatched_at, started_at=order.started_at,
            completed_at=order.completed_at, canceled_at=order.canceled_at,
            created_at=order.created_at, updated_at=order.updated_at,
            pickup_id=order.pickup, dropoff_id=order.dropoff, driver_id=order.driver,
        )
