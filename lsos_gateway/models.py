"""
Shared data models for the LSOS gateway.

These are plain Python dataclasses used across the system. The REST layer
renders them through helpers/serializers.py and GraphQL wraps them with
the @strawberry.type classes in api/types.py.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import UUID, uuid4

from lsos_gateway.enums import DriverStatus, OrderStatus, VehicleStatus, WebhookEvent, WebhookStatus
from lsos_gateway.public_id import generate_public_id, generate_tracking_number


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Point:
    """Geographic coordinate"""
    latitude: float
    longitude: float


@dataclass(kw_only=True)
class Resource:
    """Fields shared by every persisted resource"""
    resource: ClassVar[str] = "resource"

    public_id: str = ""
    uuid: UUID = field(default_factory=uuid4)
    meta: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not self.public_id:
            self.public_id = generate_public_id(self.resource)

    def touch(self) -> None:
        self.updated_at = utcnow()


@dataclass(kw_only=True)
class Place(Resource):
    resource: ClassVar[str] = "place"

    name: str
    street1: str | None = None
    street2: str | None = None
    city: str | None = None
    province: str | None = None
    postal_code: str | None = None
    country: str | None = None
    phone: str | None = None
    location: Point | None = None


@dataclass(kw_only=True)
class Driver(Resource):
    resource: ClassVar[str] = "driver"

    name: str
    email: str | None = None
    phone: str | None = None
    status: DriverStatus = DriverStatus.ACTIVE
    online: bool = False
    vehicle: str | None = None  # Vehicle public_id
    current_order: str | None = None  # Order public_id
    location: Point | None = None
    heading: float | None = None
    speed: float | None = None
    location_updated_at: datetime | None = None


@dataclass(kw_only=True)
class Vehicle(Resource):
    resource: ClassVar[str] = "vehicle"

    make: str | None = None
    model: str | None = None
    year: int | None = None
    plate_number: str | None = None
    vin: str | None = None
    status: VehicleStatus = VehicleStatus.OPERATIONAL
    driver: str | None = None  # Driver public_id
    location: Point | None = None


@dataclass(kw_only=True)
class Order(Resource):
    resource: ClassVar[str] = "order"

    pickup: str  # Place public_id
    dropoff: str  # Place public_id
    type: str = "default"
    status: OrderStatus = OrderStatus.CREATED
    tracking_number: str = field(default_factory=generate_tracking_number)
    driver: str | None = None  # Driver public_id
    notes: str | None = None
    scheduled_at: datetime | None = None
    dispatched_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    canceled_at: datetime | None = None


@dataclass(kw_only=True)
class WebhookEndpoint(Resource):
    resource: ClassVar[str] = "webhook"

    url: str
    secret: str
    events: list[WebhookEvent] = field(default_factory=list)  # Empty means every event
    status: WebhookStatus = WebhookStatus.ENABLED
    description: str | None = None

    def accepts(self, event: WebhookEvent) -> bool:
        return self.status == WebhookStatus.ENABLED and (not self.events or event in self.events)


@dataclass
class Event:
    """A state change, delivered to webhooks and relayed on pub/sub channels"""
    event: WebhookEvent
    data: dict[str, Any]
    id: str = field(default_factory=lambda: generate_public_id("event"))
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class WebhookRequestLog:
    """Outcome of delivering one event to one endpoint"""
    webhook_id: str
    event_id: str
    event: WebhookEvent
    success: bool
    attempts: int
    status_code: int | None = None
    error: str | None = None
    duration_ms: int = 0
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class ApiCredential:
    """Bearer credential provisioned from the credentials file"""
    name: str
    key: str
    scopes: list[str] = field(default_factory=lambda: ["*"])

    def allows(self, resource: str, action: str) -> bool:
        return any(scope in ("*", f"{resource}:*", f"{resource}:{action}") for scope in self.scopes)
