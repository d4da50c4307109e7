"""
Webhook Dispatcher - delivers events to registered webhook endpoints.

Events are queued by the EventBus and delivered by background workers.
Each delivery is signed with the endpoint secret and retried with
exponential backoff on request errors, 408, 429 and 5xx responses.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import time

import httpx
from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from lsos_gateway.helpers.serializers import event_to_dict
from lsos_gateway.models import Event, WebhookEndpoint, WebhookRequestLog
from lsos_gateway.resource_store import WebhookStore

SIGNATURE_HEADER = "X-LSOS-Signature"
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


class RetryableStatus(Exception):
    def __init__(self, status_code: int):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


def is_retryable(status_code: int) -> bool:
    return status_code >= 500 or status_code in RETRYABLE_CLIENT_STATUSES


def sign(secret: str, timestamp: int, body: bytes) -> str:
    """HMAC-SHA256 over `{timestamp}.{body}`, hex encoded"""
    message = str(timestamp).encode() + b"." + body
    return "sha256=" + hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class WebhookDispatcher:
    def __init__(
        self,
        store: WebhookStore,
        client: httpx.AsyncClient,
        max_attempts: int = 5,
        backoff_multiplier: float = 1.0,
        backoff_max: float = 30.0,
        workers: int = 1,
    ):
        self.store = store
        self.client = client
        self.max_attempts = max_attempts
        self.backoff_multiplier = backoff_multiplier
        self.backoff_max = backoff_max
        self.worker_count = workers
        self.queue: asyncio.Queue[Event] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []

    def start(self) -> None:
        if self._workers:
            return
        self._workers = [asyncio.create_task(self._work(i)) for i in range(self.worker_count)]
        logger.info("Webhook dispatcher started with {} worker(s)", self.worker_count)

    async def stop(self) -> None:
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

    def enqueue(self, event: Event) -> None:
        self.queue.put_nowait(event)

    async def _work(self, index: int) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.dispatch(event)
            except Exception:
                logger.exception("Worker {} failed to dispatch event {}", index, event.id)
            finally:
                self.queue.task_done()

    async def dispatch(self, event: Event) -> list[WebhookRequestLog]:
        """Deliver one event to every endpoint subscribed to it"""
        endpoints = [endpoint for endpoint in await self.store.list_all() if endpoint.accepts(event.event)]
        if not endpoints:
            return []
        return list(await asyncio.gather(*(self.deliver(endpoint, event) for endpoint in endpoints)))

    async def _post(self, endpoint: WebhookEndpoint, event: Event, body: bytes) -> httpx.Response:
        timestamp = int(time.time())
        headers = {
            "Content-Type": "application/json",
            "X-LSOS-Event": event.event.value,
            "X-LSOS-Event-Id": event.id,
            "X-LSOS-Timestamp": str(timestamp),
            SIGNATURE_HEADER: sign(endpoint.secret, timestamp, body),
        }
        return await self.client.post(endpoint.url, content=body, headers=headers)

    async def deliver(self, endpoint: WebhookEndpoint, event: Event) -> WebhookRequestLog:
        body = json.dumps(event_to_dict(event)).encode()
        attempts = 0
        status_code: int | None = None
        error: str | None = None
        started = time.monotonic()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.backoff_multiplier, max=self.backoff_max),
                retry=retry_if_exception_type((httpx.RequestError, RetryableStatus)),
                reraise=True,
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    status_code = None
                    response = await self._post(endpoint, event, body)
                    status_code = response.status_code
                    if is_retryable(status_code):
                        logger.warning("Webhook {} answered {} on attempt {}", endpoint.public_id, status_code, attempts)
                        raise RetryableStatus(status_code)
        except RetryableStatus as e:
            error = str(e)
        except httpx.RequestError as e:
            error = str(e) or type(e).__name__
            logger.warning("Webhook {} unreachable: {}", endpoint.public_id, error)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            status_code = None
            error = str(e) or type(e).__name__
            logger.warning("Webhook {} request failed: {}", endpoint.public_id, error)

        success = status_code is not None and 200 <= status_code < 300
        if not success and error is None:
            error = f"HTTP {status_code}"

        log = WebhookRequestLog(
            webhook_id=endpoint.public_id,
            event_id=event.id,
            event=event.event,
            success=success,
            attempts=attempts,
            status_code=status_code,
            error=error,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        await self.store.append_log(log)
        if success:
            logger.info("Delivered {} to webhook {} after {} attempt(s)", event.event.value, endpoint.public_id, attempts)
        else:
            logger.error("Giving up on {} for webhook {}: {}", event.event.value, endpoint.public_id, error)
        return log
