"""
API layer for the LSOS gateway.

This package contains:
- rest/: the versioned REST API (orders, drivers, vehicles, places, webhooks)
- types.py: GraphQL type definitions
- subscriptions.py: GraphQL subscription resolvers
- schema.py: Combined Strawberry schema
"""

from .schema import schema

__all__ = ["schema"]
