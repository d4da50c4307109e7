"""Request bodies accepted by the REST API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from lsos_gateway.enums import DriverStatus, OrderStatus, VehicleStatus, WebhookEvent, WebhookStatus

URL_PATTERN = r"^https?://\S+$"


class Payload(BaseModel):
    """Update payloads type non-nullable fields without Optional so an explicit null is rejected"""
    model_config = ConfigDict(extra="forbid")

    def fields(self) -> dict[str, Any]:
        """Only the fields the client actually sent"""
        return self.model_dump(exclude_unset=True)


class PointPayload(Payload):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


# === Places ===

class PlaceCreate(Payload):
    name: str = Field(min_length=1, max_length=255)
    street1: str | None = None
    street2: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    country: str | None = Field(default=None, min_length=2, max_length=2, description="ISO 3166-1 alpha-2")
    phone: str | None = None
    location: PointPayload | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class PlaceUpdate(Payload):
    name: str = Field(default=None, min_length=1, max_length=255)
    street1: str | None = None
    street2: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    country: str | None = Field(default=None, min_length=2, max_length=2)
    phone: str | None = None
    location: PointPayload | None = None
    meta: dict[str, Any] = None


# === Drivers ===

class DriverCreate(Payload):
    name: str = Field(min_length=1, max_length=255)
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str | None = None
    status: DriverStatus = DriverStatus.ACTIVE
    online: bool = False
    vehicle: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class DriverUpdate(Payload):
    name: str = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str | None = None
    status: DriverStatus = None
    online: bool = None
    vehicle: str | None = None
    meta: dict[str, Any] = None


class TrackPayload(Payload):
    location: PointPayload
    heading: float | None = Field(default=None, ge=0, lt=360)
    speed: float | None = Field(default=None, ge=0)


# === Vehicles ===

class VehicleCreate(Payload):
    make: str | None = None
    model: str | None = None
    year: int | None = Field(default=None, ge=1886, le=2100)
    plate_number: str | None = None
    vin: str | None = Field(default=None, min_length=11, max_length=17)
    status: VehicleStatus = VehicleStatus.OPERATIONAL
    driver: str | None = None
    location: PointPayload | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class VehicleUpdate(Payload):
    make: str | None = None
    model: str | None = None
    year: int | None = Field(default=None, ge=1886, le=2100)
    plate_number: str | None = None
    vin: str | None = Field(default=None, min_length=11, max_length=17)
    status: VehicleStatus = None
    driver: str | None = None
    location: PointPayload | None = None
    meta: dict[str, Any] = None


# === Orders ===

class OrderCreate(Payload):
    pickup: str
    dropoff: str
    type: str = "default"
    driver: str | None = None
    notes: str | None = None
    scheduled_at: datetime | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class OrderUpdate(Payload):
    pickup: str = None
    dropoff: str = None
    type: str = None
    notes: str | None = None
    scheduled_at: datetime | None = None
    meta: dict[str, Any] = None


class AssignPayload(Payload):
    driver: str


class StatusPayload(Payload):
    status: OrderStatus


# === Webhooks ===

class WebhookCreate(Payload):
    url: str = Field(pattern=URL_PATTERN, max_length=2048)
    events: list[WebhookEvent] = Field(default_factory=list)
    secret: str | None = Field(default=None, min_length=16)
    status: WebhookStatus = WebhookStatus.ENABLED
    description: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class WebhookUpdate(Payload):
    url: str = Field(default=None, pattern=URL_PATTERN, max_length=2048)
    events: list[WebhookEvent] = None
    status: WebhookStatus = None
    description: str | None = None
    meta: dict[str, Any] = None
