"""
Shared enum definitions for the LSOS gateway.

These are plain Python enums whose values are the strings used on the wire.
api/types.py wraps the resource statuses with strawberry.enum for GraphQL.
"""

from enum import Enum


class OrderStatus(Enum):
    """Lifecycle status of an order"""
    CREATED = "created"
    DISPATCHED = "dispatched"
    DRIVER_ENROUTE = "driver_enroute"
    STARTED = "started"
    COMPLETED = "completed"
    CANCELED = "canceled"


class DriverStatus(Enum):
    """Account status of a driver"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class VehicleStatus(Enum):
    """Operational status of a vehicle"""
    OPERATIONAL = "operational"
    MAINTENANCE = "maintenance"
    DECOMMISSIONED = "decommissioned"


class WebhookStatus(Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


class WebhookEvent(Enum):
    """Events that can be delivered to webhook endpoints"""
    ORDER_CREATED = "order.created"
    ORDER_UPDATED = "order.updated"
    ORDER_STATUS_CHANGED = "order.status_changed"
    ORDER_ASSIGNED = "order.assigned"
    ORDER_COMPLETED = "order.completed"
    ORDER_CANCELLED = "order.cancelled"
    DRIVER_LOCATION_UPDATED = "driver.location_updated"
    DRIVER_STATUS_CHANGED = "driver.status_changed"


class FilterOperator(Enum):
    """Operators accepted in `field[op]=value` list filters"""
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NIN = "nin"
    CONTAINS = "contains"
    BETWEEN = "between"


class SocketAction(Enum):
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    PUBLISH = "publish"


# Allowed order transitions; COMPLETED and CANCELED are terminal
ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CREATED: frozenset({OrderStatus.DISPATCHED, OrderStatus.CANCELED}),
    OrderStatus.DISPATCHED: frozenset({OrderStatus.DRIVER_ENROUTE, OrderStatus.STARTED, OrderStatus.CANCELED}),
    OrderStatus.DRIVER_ENROUTE: frozenset({OrderStatus.STARTED, OrderStatus.CANCELED}),
    OrderStatus.STARTED: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
}
