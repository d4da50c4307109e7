"""
Resource deserialization helpers.

Converts the dicts produced by helpers/serializers.py (as read back from
Redis) into dataclass resources.
"""

import json
from datetime import datetime
from uuid import UUID

from lsos_gateway.enums import DriverStatus, OrderStatus, VehicleStatus, WebhookEvent, WebhookStatus
from lsos_gateway.models import Driver, Order, Place, Point, Vehicle, WebhookEndpoint, WebhookRequestLog


def str_to_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def dict_to_point(data: dict | None) -> Point | None:
    if not data:
        return None
    return Point(latitude=float(data['latitude']), longitude=float(data['longitude']))


def _common(data: dict) -> dict:
    return {
        'public_id': data['id'],
        'uuid': UUID(data['uuid']),
        'meta': data.get('meta') or {},
        'created_at': str_to_datetime(data['created_at']),
        'updated_at': str_to_datetime(data['updated_at']),
    }


def dict_to_place(data: dict) -> Place:
    return Place(
        **_common(data),
        name=data['name'],
        street1=data.get('street1'),
        street2=data.get('street2'),
        city=data.get('city'),
        province=data.get('province'),
        postal_code=data.get('postal_code'),
        country=data.get('country'),
        phone=data.get('phone'),
        location=dict_to_point(data.get('location')),
    )


def dict_to_driver(data: dict) -> Driver:
    return Driver(
        **_common(data),
        name=data['name'],
        email=data.get('email'),
        phone=data.get('phone'),
        status=DriverStatus(data['status']),
        online=bool(data.get('online')),
        vehicle=data.get('vehicle'),
        current_order=data.get('current_order'),
        location=dict_to_point(data.get('location')),
        heading=data.get('heading'),
        speed=data.get('speed'),
        location_updated_at=str_to_datetime(data.get('location_updated_at')),
    )


def dict_to_vehicle(data: dict) -> Vehicle:
    return Vehicle(
        **_common(data),
        make=data.get('make'),
        model=data.get('model'),
        year=int(data['year']) if data.get('year') is not None else None,
        plate_number=data.get('plate_number'),
        vin=data.get('vin'),
        status=VehicleStatus(data['status']),
        driver=data.get('driver'),
        location=dict_to_point(data.get('location')),
    )


def dict_to_order(data: dict) -> Order:
    return Order(
        **_common(data),
        tracking_number=data['tracking_number'],
        type=data.get('type') or 'default',
        status=OrderStatus(data['status']),
        pickup=data['pickup'],
        dropoff=data['dropoff'],
        driver=data.get('driver'),
        notes=data.get('notes'),
        scheduled_at=str_to_datetime(data.get('scheduled_at')),
        dispatched_at=str_to_datetime(data.get('dispatched_at')),
        started_at=str_to_datetime(data.get('started_at')),
        completed_at=str_to_datetime(data.get('completed_at')),
        canceled_at=str_to_datetime(data.get('canceled_at')),
    )


def dict_to_webhook(data: dict) -> WebhookEndpoint:
    return WebhookEndpoint(
        **_common(data),
        url=data['url'],
        secret=data['secret'],
        events=[WebhookEvent(e) for e in data.get('events') or []],
        status=WebhookStatus(data['status']),
        description=data.get('description'),
    )


def dict_to_request_log(data: dict) -> WebhookRequestLog:
    return WebhookRequestLog(
        webhook_id=data['webhook'],
        event_id=data['event_id'],
        event=WebhookEvent(data['event']),
        success=bool(data['success']),
        attempts=int(data['attempts']),
        status_code=data.get('status_code'),
        error=data.get('error'),
        duration_ms=int(data.get('duration_ms') or 0),
        created_at=str_to_datetime(data['created_at']),
    )


def from_redis_mapping(data: dict[str, str]) -> dict | None:
    """Decode a hash written with to_redis_mapping, None if the hash is empty"""
    if not data:
        return None
    return {key: json.loads(value) for key, value in data.items()}
