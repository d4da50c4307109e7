"""Fixed-window request rate limiting backed by Redis."""

from __future__ import annotations

import time
from dataclasses import dataclass

import redis.asyncio as redis


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_in: int  # Seconds until the window resets

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.reset_in)
        return headers


class RateLimiter:
    def __init__(self, redis_client: redis.Redis, limit: int, window_seconds: int = 60):
        self.redis = redis_client
        self.limit = limit
        self.window_seconds = window_seconds

    async def hit(self, identity: str, now: float | None = None) -> RateLimitResult:
        """Count one request for `identity` in the current window"""
        now = time.time() if now is None else now
        window = int(now // self.window_seconds)
        key = f"ratelimit:{identity}:{window}"

        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds)
        count, _ = await pipe.execute()

        reset_in = max(1, int((window + 1) * self.window_seconds - now))
        return RateLimitResult(
            allowed=count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset_in=reset_in,
        )
