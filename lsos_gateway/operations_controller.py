from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from lsos_gateway.enums import DriverStatus, ORDER_TRANSITIONS, OrderStatus, WebhookEvent
from lsos_gateway.errors import InvalidStatusTransition, ValidationFailed
from lsos_gateway.event_bus import EventBus
from lsos_gateway.helpers.serializers import driver_to_dict, order_to_dict
from lsos_gateway.models import Driver, Order, Place, Point, Resource, Vehicle, WebhookEndpoint, utcnow
from lsos_gateway.resource_store import Stores

ORDER_MUTABLE_FIELDS = frozenset({"type", "notes", "scheduled_at", "pickup", "dropoff", "meta"})
DRIVER_MUTABLE_FIELDS = frozenset({"name", "email", "phone", "status", "online", "vehicle", "meta"})
VEHICLE_MUTABLE_FIELDS = frozenset({"make", "model", "year", "plate_number", "vin", "status", "driver", "location", "meta"})
PLACE_MUTABLE_FIELDS = frozenset({"name", "street1", "street2", "city", "province", "postal_code",
                                  "country", "phone", "location", "meta"})
WEBHOOK_MUTABLE_FIELDS = frozenset({"url", "events", "status", "description", "meta"})

# Timestamp stamped on the order when it enters a status
_STATUS_TIMESTAMPS = {
    OrderStatus.DISPATCHED: "dispatched_at",
    OrderStatus.STARTED: "started_at",
    OrderStatus.COMPLETED: "completed_at",
    OrderStatus.CANCELED: "canceled_at",
}

_TERMINAL_EVENTS = {
    OrderStatus.COMPLETED: WebhookEvent.ORDER_COMPLETED,
    OrderStatus.CANCELED: WebhookEvent.ORDER_CANCELLED,
}


def _normalize(name: str, value: Any) -> Any:
    if name == "location" and isinstance(value, dict):
        return Point(latitude=float(value["latitude"]), longitude=float(value["longitude"]))
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _prepare(fields: dict[str, Any]) -> dict[str, Any]:
    return {name: _normalize(name, value) for name, value in fields.items()}


def _apply(resource: Resource, changes: dict[str, Any], allowed: frozenset[str]) -> dict[str, Any]:
    """Set allowed fields and return {field: previous value} for those that changed"""
    unknown = set(changes) - allowed
    if unknown:
        raise ValidationFailed("Fields cannot be updated", details={"fields": sorted(unknown)})
    previous = {}
    for name, value in _prepare(changes).items():
        if getattr(resource, name) != value:
            previous[name] = getattr(resource, name)
            setattr(resource, name, value)
    if previous:
        resource.touch()
    return previous


class OperationsController:
    """All mutations go through here; every state change is saved, then emitted"""

    def __init__(self, stores: Stores, events: EventBus):
        self.stores = stores
        self.events = events

    # === Places ===

    async def create_place(self, fields: dict[str, Any]) -> Place:
        place = Place(**_prepare(fields))
        return await self.stores.places.save(place)

    async def update_place(self, public_id: str, changes: dict[str, Any]) -> Place:
        place = await self.stores.places.require(public_id)
        _apply(place, changes, PLACE_MUTABLE_FIELDS)
        return await self.stores.places.save(place)

    async def delete_place(self, public_id: str) -> None:
        await self.stores.places.require(public_id)
        # Orders keep their reference to a deleted place
        await self.stores.places.delete(public_id)

    # === Orders ===

    async def _require_place(self, field: str, public_id: str) -> None:
        if not await self.stores.places.exists(public_id):
            raise ValidationFailed(f"Place '{public_id}' does not exist", details={"field": field, "id": public_id})

    async def _require_assignable_driver(self, public_id: str) -> Driver:
        driver = await self.stores.drivers.get(public_id)
        if driver is None:
            raise ValidationFailed(f"Driver '{public_id}' does not exist", details={"field": "driver", "id": public_id})
        if driver.status != DriverStatus.ACTIVE:
            raise ValidationFailed(f"Driver '{public_id}' is {driver.status.value}",
                                   details={"field": "driver", "status": driver.status.value})
        return driver

    async def create_order(self, fields: dict[str, Any]) -> Order:
        fields = dict(fields)
        driver_id = fields.pop("driver", None)
        await self._require_place("pickup", fields["pickup"])
        await self._require_place("dropoff", fields["dropoff"])
        if driver_id is not None:
            await self._require_assignable_driver(driver_id)

        order = await self.stores.orders.save(Order(**_prepare(fields)))
        logger.info("Created order {} ({})", order.public_id, order.tracking_number)
        await self.events.emit(WebhookEvent.ORDER_CREATED, order, order_to_dict(order))

        if driver_id is not None:
            order = await self.assign_driver(order.public_id, driver_id)
        return order

    async def update_order(self, public_id: str, changes: dict[str, Any]) -> Order:
        order = await self.stores.orders.require(public_id)
        for field in ("pickup", "dropoff"):
            if changes.get(field) is not None:
                await self._require_place(field, changes[field])
        if not _apply(order, changes, ORDER_MUTABLE_FIELDS):
            return order
        await self.stores.orders.save(order)
        await self.events.emit(WebhookEvent.ORDER_UPDATED, order, order_to_dict(order))
        return order

    async def delete_order(self, public_id: str) -> None:
        order = await self.stores.orders.require(public_id)
        await self._release_driver(order)
        await self.stores.orders.delete(public_id)
        logger.info("Deleted order {}", public_id)

    async def _release_driver(self, order: Order, driver_id: str | None = None) -> None:
        driver_id = driver_id or order.driver
        if driver_id is None:
            return
        driver = await self.stores.drivers.get(driver_id)
        if driver is not None and driver.current_order == order.public_id:
            driver.current_order = None
            driver.touch()
            await self.stores.drivers.save(driver)

    async def assign_driver(self, public_id: str, driver_id: str) -> Order:
        order = await self.stores.orders.require(public_id)
        if not ORDER_TRANSITIONS[order.status]:
            raise InvalidStatusTransition(f"Cannot assign a driver to a {order.status.value} order",
                                          details={"status": order.status.value})
        driver = await self._require_assignable_driver(driver_id)

        if order.driver not in (None, driver_id):
            await self._release_driver(order)

        order.driver = driver_id
        order.touch()
        driver.current_order = order.public_id
        driver.touch()
        await self.stores.drivers.save(driver)
        await self.stores.orders.save(order)

        logger.info("Assigned driver {} to order {}", driver_id, public_id)
        await self.events.emit(WebhookEvent.ORDER_ASSIGNED, order, order_to_dict(order))
        return order

    async def transition(self, public_id: str, status: OrderStatus) -> Order:
        order = await self.stores.orders.require(public_id)
        previous = order.status
        if status not in ORDER_TRANSITIONS[previous]:
            raise InvalidStatusTransition(
                f"Order cannot move from {previous.value} to {status.value}",
                details={"from": previous.value, "to": status.value,
                         "allowed": sorted(s.value for s in ORDER_TRANSITIONS[previous])},
            )
        if status == OrderStatus.DISPATCHED and order.driver is None:
            raise ValidationFailed("Order must have an assigned driver before dispatch", details={"field": "driver"})

        now = utcnow()
        order.status = status
        if status in _STATUS_TIMESTAMPS:
            setattr(order, _STATUS_TIMESTAMPS[status], now)
        order.updated_at = now
        await self.stores.orders.save(order)
        if status in _TERMINAL_EVENTS:
            await self._release_driver(order)

        logger.info("Order {} moved from {} to {}", public_id, previous.value, status.value)
        payload = order_to_dict(order)
        await self.events.emit(WebhookEvent.ORDER_STATUS_CHANGED, order, {**payload, "previous_status": previous.value})
        if status in _TERMINAL_EVENTS:
            await self.events.emit(_TERMINAL_EVENTS[status], order, payload)
        return order

    async def dispatch_order(self, public_id: str) -> Order:
        return await self.transition(public_id, OrderStatus.DISPATCHED)

    async def start_order(self, public_id: str) -> Order:
        return await self.transition(public_id, OrderStatus.STARTED)

    async def complete_order(self, public_id: str) -> Order:
        return await self.transition(public_id, OrderStatus.COMPLETED)

    async def cancel_order(self, public_id: str) -> Order:
        return await self.transition(public_id, OrderStatus.CANCELED)

    # === Drivers and vehicles ===

    async def _link_vehicle(self, driver: Driver, vehicle_id: str | None, previous_vehicle_id: str | None) -> None:
        """Keep Driver.vehicle and Vehicle.driver pointing at each other"""
        if previous_vehicle_id and previous_vehicle_id != vehicle_id:
            previous = await self.stores.vehicles.get(previous_vehicle_id)
            if previous is not None and previous.driver == driver.public_id:
                previous.driver = None
                previous.touch()
                await self.stores.vehicles.save(previous)
        if vehicle_id is None:
            return
        vehicle = await self.stores.vehicles.require(vehicle_id)
        if vehicle.driver not in (None, driver.public_id):
            other = await self.stores.drivers.get(vehicle.driver)
            if other is not None and other.vehicle == vehicle_id:
                other.vehicle = None
                other.touch()
                await self.stores.drivers.save(other)
        vehicle.driver = driver.public_id
        vehicle.touch()
        await self.stores.vehicles.save(vehicle)

    async def _require_vehicle(self, public_id: str) -> None:
        if not await self.stores.vehicles.exists(public_id):
            raise ValidationFailed(f"Vehicle '{public_id}' does not exist", details={"field": "vehicle", "id": public_id})

    async def _require_driver(self, public_id: str) -> Driver:
        driver = await self.stores.drivers.get(public_id)
        if driver is None:
            raise ValidationFailed(f"Driver '{public_id}' does not exist", details={"field": "driver", "id": public_id})
        return driver

    async def create_driver(self, fields: dict[str, Any]) -> Driver:
        if fields.get("vehicle") is not None:
            await self._require_vehicle(fields["vehicle"])
        driver = Driver(**_prepare(fields))
        await self.stores.drivers.save(driver)
        await self._link_vehicle(driver, driver.vehicle, None)
        logger.info("Created driver {}", driver.public_id)
        return driver

    async def update_driver(self, public_id: str, changes: dict[str, Any]) -> Driver:
        driver = await self.stores.drivers.require(public_id)
        if changes.get("vehicle") is not None:
            await self._require_vehicle(changes["vehicle"])
        previous = _apply(driver, changes, DRIVER_MUTABLE_FIELDS)
        if not previous:
            return driver
        await self.stores.drivers.save(driver)
        if "vehicle" in previous:
            await self._link_vehicle(driver, driver.vehicle, previous["vehicle"])
        if "status" in previous or "online" in previous:
            await self._emit_driver_status(driver, previous)
        return driver

    async def _emit_driver_status(self, driver: Driver, previous: dict[str, Any]) -> None:
        payload = driver_to_dict(driver)
        if "status" in previous:
            payload["previous_status"] = previous["status"].value
        if "online" in previous:
            payload["previous_online"] = previous["online"]
        await self.events.emit(WebhookEvent.DRIVER_STATUS_CHANGED, driver, payload)

    async def toggle_online(self, public_id: str) -> Driver:
        driver = await self.stores.drivers.require(public_id)
        return await self.update_driver(public_id, {"online": not driver.online})

    async def track_driver(self, public_id: str, location: dict[str, float],
                           heading: float | None = None, speed: float | None = None) -> Driver:
        driver = await self.stores.drivers.require(public_id)
        now = utcnow()
        driver.location = _normalize("location", location)
        driver.heading = heading
        driver.speed = speed
        driver.location_updated_at = now
        driver.updated_at = now
        await self.stores.drivers.save(driver)

        if driver.vehicle is not None:
            vehicle = await self.stores.vehicles.get(driver.vehicle)
            if vehicle is not None:
                vehicle.location = driver.location
                vehicle.updated_at = now
                await self.stores.vehicles.save(vehicle)

        await self.events.emit(WebhookEvent.DRIVER_LOCATION_UPDATED, driver, driver_to_dict(driver))
        return driver

    async def delete_driver(self, public_id: str) -> None:
        driver = await self.stores.drivers.require(public_id)
        await self._link_vehicle(driver, None, driver.vehicle)
        await self.stores.drivers.delete(public_id)
        # Open orders lose the assignment; closed orders keep it as history
        for order in await self.stores.orders.list_all():
            if order.driver != public_id or not ORDER_TRANSITIONS[order.status]:
                continue
            order.driver = None
            order.touch()
            await self.stores.orders.save(order)
            logger.info("Unassigned deleted driver {} from order {}", public_id, order.public_id)
            await self.events.emit(WebhookEvent.ORDER_UPDATED, order, order_to_dict(order))
        logger.info("Deleted driver {}", public_id)

    async def _link_driver(self, vehicle: Vehicle, driver_id: str | None, previous_driver_id: str | None) -> None:
        if previous_driver_id and previous_driver_id != driver_id:
            previous = await self.stores.drivers.get(previous_driver_id)
            if previous is not None and previous.vehicle == vehicle.public_id:
                previous.vehicle = None
                previous.touch()
                await self.stores.drivers.save(previous)
        if driver_id is None:
            return
        driver = await self._require_driver(driver_id)
        if driver.vehicle not in (None, vehicle.public_id):
            other = await self.stores.vehicles.get(driver.vehicle)
            if other is not None and other.driver == driver_id:
                other.driver = None
                other.touch()
                await self.stores.vehicles.save(other)
        driver.vehicle = vehicle.public_id
        driver.touch()
        await self.stores.drivers.save(driver)

    async def create_vehicle(self, fields: dict[str, Any]) -> Vehicle:
        if fields.get("driver") is not None:
            await self._require_driver(fields["driver"])
        vehicle = Vehicle(**_prepare(fields))
        await self.stores.vehicles.save(vehicle)
        await self._link_driver(vehicle, vehicle.driver, None)
        return vehicle

    async def update_vehicle(self, public_id: str, changes: dict[str, Any]) -> Vehicle:
        vehicle = await self.stores.vehicles.require(public_id)
        if changes.get("driver") is not None:
            await self._require_driver(changes["driver"])
        previous = _apply(vehicle, changes, VEHICLE_MUTABLE_FIELDS)
        if previous:
            await self.stores.vehicles.save(vehicle)
        if "driver" in previous:
            await self._link_driver(vehicle, vehicle.driver, previous["driver"])
        return vehicle

    async def delete_vehicle(self, public_id: str) -> None:
        vehicle = await self.stores.vehicles.require(public_id)
        await self._link_driver(vehicle, None, vehicle.driver)
        await self.stores.vehicles.delete(public_id)

    # === Webhook endpoints ===

    async def create_webhook(self, fields: dict[str, Any]) -> WebhookEndpoint:
        fields = dict(fields)
        if not fields.get("secret"):
            fields["secret"] = secrets.token_hex(32)
        endpoint = WebhookEndpoint(**fields)
        logger.info("Registered webhook {} for {}", endpoint.public_id, endpoint.url)
        return await self.stores.webhooks.save(endpoint)

    async def update_webhook(self, public_id: str, changes: dict[str, Any]) -> WebhookEndpoint:
        endpoint = await self.stores.webhooks.require(public_id)
        if _apply(endpoint, changes, WEBHOOK_MUTABLE_FIELDS):
            await self.stores.webhooks.save(endpoint)
        return endpoint

    async def delete_webhook(self, public_id: str) -> None:
        await self.stores.webhooks.require(public_id)
        await self.stores.webhooks.delete(public_id)
