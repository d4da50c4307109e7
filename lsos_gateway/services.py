"""Runtime components shared by the REST API, GraphQL and the socket relay."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
import redis.asyncio as redis

from config.settings import Settings
from lsos_gateway.auth import Authenticator, CredentialStore
from lsos_gateway.event_bus import EventBus
from lsos_gateway.operations_controller import OperationsController
from lsos_gateway.rate_limiter import RateLimiter
from lsos_gateway.resource_store import Stores
from lsos_gateway.webhook_dispatcher import WebhookDispatcher


@dataclass
class Services:
    redis: redis.Redis
    stores: Stores
    credentials: CredentialStore
    authenticator: Authenticator
    dispatcher: WebhookDispatcher
    events: EventBus
    controller: OperationsController
    default_page_size: int = 25
    max_page_size: int = 100

    @classmethod
    def build(cls, redis_client: redis.Redis, http_client: httpx.AsyncClient, settings: Settings) -> Services:
        stores = Stores(redis_client)
        credentials = CredentialStore(redis_client)
        rate_limiter = RateLimiter(redis_client, settings.rate_limit, settings.rate_limit_window)
        dispatcher = WebhookDispatcher(
            stores.webhooks,
            http_client,
            max_attempts=settings.webhook_max_attempts,
            backoff_multiplier=settings.webhook_backoff_multiplier,
            backoff_max=settings.webhook_backoff_max,
            workers=settings.webhook_workers,
        )
        events = EventBus(redis_client, dispatcher)
        return cls(
            redis=redis_client,
            stores=stores,
            credentials=credentials,
            authenticator=Authenticator(credentials, rate_limiter),
            dispatcher=dispatcher,
            events=events,
            controller=OperationsController(stores, events),
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
        )
