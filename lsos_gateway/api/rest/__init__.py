"""Versioned REST API."""

from fastapi import APIRouter

from . import drivers, orders, places, vehicles, webhooks

API_PREFIX = "/v1"

router = APIRouter(prefix=API_PREFIX)
for module in (orders, drivers, vehicles, places, webhooks):
    router.include_router(module.router)

__all__ = ["router", "API_PREFIX"]
