"""
Resource serialization helpers.

Converts dataclass resources into JSON-compatible dicts. The same dicts are
rendered by the REST API, carried in event payloads and, one JSON value per
hash field, persisted to Redis.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from lsos_gateway.models import (
    Driver, Event, Order, Place, Point, Resource, Vehicle, WebhookEndpoint, WebhookRequestLog,
)


def datetime_to_str(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def point_to_dict(point: Point | None) -> dict | None:
    if point is None:
        return None
    return {'latitude': point.latitude, 'longitude': point.longitude}


def _common(resource: Resource) -> dict:
    return {
        'id': resource.public_id,
        'uuid': str(resource.uuid),
        'meta': resource.meta,
        'created_at': datetime_to_str(resource.created_at),
        'updated_at': datetime_to_str(resource.updated_at),
    }


def place_to_dict(place: Place) -> dict:
    return {
        **_common(place),
        'name': place.name,
        'street1': place.street1,
        'street2': place.street2,
        'city': place.city,
        'province': place.province,
        'postal_code': place.postal_code,
        'country': place.country,
        'phone': place.phone,
        'location': point_to_dict(place.location),
    }


def driver_to_dict(driver: Driver) -> dict:
    return {
        **_common(driver),
        'name': driver.name,
        'email': driver.email,
        'phone': driver.phone,
        'status': driver.status.value,
        'online': driver.online,
        'vehicle': driver.vehicle,
        'current_order': driver.current_order,
        'location': point_to_dict(driver.location),
        'heading': driver.heading,
        'speed': driver.speed,
        'location_updated_at': datetime_to_str(driver.location_updated_at),
    }


def vehicle_to_dict(vehicle: Vehicle) -> dict:
    return {
        **_common(vehicle),
        'make': vehicle.make,
        'model': vehicle.model,
        'year': vehicle.year,
        'plate_number': vehicle.plate_number,
        'vin': vehicle.vin,
        'status': vehicle.status.value,
        'driver': vehicle.driver,
        'location': point_to_dict(vehicle.location),
    }


def order_to_dict(order: Order) -> dict:
    return {
        **_common(order),
        'tracking_number': order.tracking_number,
        'type': order.type,
        'status': order.status.value,
        'pickup': order.pickup,
        'dropoff': order.dropoff,
        'driver': order.driver,
        'notes': order.notes,
        'scheduled_at': datetime_to_str(order.scheduled_at),
        'dispatched_at': datetime_to_str(order.dispatched_at),
        'started_at': datetime_to_str(order.started_at),
        'completed_at': datetime_to_str(order.completed_at),
        'canceled_at': datetime_to_str(order.canceled_at),
    }


def webhook_to_dict(endpoint: WebhookEndpoint, include_secret: bool = False) -> dict:
    data = {
        **_common(endpoint),
        'url': endpoint.url,
        'events': [e.value for e in endpoint.events],
        'status': endpoint.status.value,
        'description': endpoint.description,
    }
    if include_secret:
        data['secret'] = endpoint.secret
    return data


def webhook_to_storage_dict(endpoint: WebhookEndpoint) -> dict:
    return webhook_to_dict(endpoint, include_secret=True)


def event_to_dict(event: Event) -> dict:
    """Envelope used for webhook bodies and pub/sub messages"""
    return {
        'id': event.id,
        'event': event.event.value,
        'created_at': datetime_to_str(event.created_at),
        'data': event.data,
    }


def request_log_to_dict(log: WebhookRequestLog) -> dict:
    return {
        'webhook': log.webhook_id,
        'event_id': log.event_id,
        'event': log.event.value,
        'success': log.success,
        'attempts': log.attempts,
        'status_code': log.status_code,
        'error': log.error,
        'duration_ms': log.duration_ms,
        'created_at': datetime_to_str(log.created_at),
    }


def to_redis_mapping(data: dict[str, Any]) -> dict[str, str]:
    """Encode every value as JSON so None, bools and nested objects survive HSET"""
    return {key: json.dumps(value) for key, value in data.items()}
