"""
Tests for the fixed-window RateLimiter via a mock Redis pipeline.
"""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from lsos_gateway.rate_limiter import RateLimiter


def redis_with_count(count):
    r = MagicMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    r.pipeline.return_value = pipe
    return r, pipe


class TestRateLimiter:
    @pytest.mark.asyncio
    async def test_key_is_per_identity_and_window(self):
        r, pipe = redis_with_count(1)
        limiter = RateLimiter(r, limit=10, window_seconds=60)

        await limiter.hit("abc", now=125.0)

        pipe.incr.assert_called_once_with("ratelimit:abc:2")
        pipe.expire.assert_called_once_with("ratelimit:abc:2", 60)

    @pytest.mark.asyncio
    async def test_under_limit(self):
        r, _ = redis_with_count(3)
        result = await RateLimiter(r, limit=10).hit("abc", now=125.0)
        assert result.allowed is True
        assert result.remaining == 7
        assert result.reset_in == 55
        assert "Retry-After" not in result.headers()

    @pytest.mark.asyncio
    async def test_last_allowed_request(self):
        r, _ = redis_with_count(10)
        result = await RateLimiter(r, limit=10).hit("abc", now=0.0)
        assert result.allowed is True
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_over_limit_sets_retry_after(self):
        r, _ = redis_with_count(11)
        result = await RateLimiter(r, limit=10).hit("abc", now=59.5)
        assert result.allowed is False
        assert result.headers() == {
            "X-RateLimit-Limit": "10",
            "X-RateLimit-Remaining": "0",
            "Retry-After": "1",
        }
