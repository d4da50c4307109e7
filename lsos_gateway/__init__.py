"""
LSOS Gateway - Logistics Fleet Operations Service

An async fleet-operations backend with:
- Versioned REST API for orders, drivers, vehicles, places and webhooks
- Signed webhook delivery with retries
- WebSocket pub/sub relay and GraphQL subscriptions over Redis
- Redis-based state management
"""

__version__ = "0.1.0"
