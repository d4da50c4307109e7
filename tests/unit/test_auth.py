"""
Tests for bearer parsing, credential storage, scopes and throttling.
"""
from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from lsos_gateway.auth import Authenticator, CredentialStore, key_digest, parse_bearer
from lsos_gateway.errors import Forbidden, RateLimitExceeded, Unauthenticated
from lsos_gateway.models import ApiCredential
from lsos_gateway.rate_limiter import RateLimitResult

KEY = "sk_test_0123456789"


class TestParseBearer:
    @pytest.mark.parametrize("header,expected", [
        ("Bearer abc", "abc"),
        ("bearer  abc ", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, header, expected):
        assert parse_bearer(header) == expected


class TestScopes:
    @pytest.mark.parametrize("scopes,resource,action,allowed", [
        (["*"], "orders", "write", True),
        (["orders:*"], "orders", "write", True),
        (["orders:read"], "orders", "read", True),
        (["orders:read"], "orders", "write", False),
        (["drivers:*"], "orders", "read", False),
        ([], "orders", "read", False),
    ])
    def test_allows(self, scopes, resource, action, allowed):
        assert ApiCredential(name="c", key=KEY, scopes=scopes).allows(resource, action) is allowed


class TestCredentialStore:
    @pytest.mark.asyncio
    async def test_raw_key_is_never_stored(self, mock_redis):
        store = CredentialStore(mock_redis)
        await store.save(ApiCredential(name="console", key=KEY, scopes=["orders:*"]))
        key = mock_redis.hset.call_args[0][0]
        mapping = mock_redis.hset.call_args[1]["mapping"]
        assert key == f"api_credential:{key_digest(KEY)}"
        assert KEY not in key
        assert KEY not in json.dumps(mapping)

    @pytest.mark.asyncio
    async def test_get_unknown_key(self, mock_redis):
        mock_redis.hgetall.return_value = {}
        assert await CredentialStore(mock_redis).get(KEY) is None

    @pytest.mark.asyncio
    async def test_get_known_key(self, mock_redis):
        mock_redis.hgetall.return_value = {"name": "console", "scopes": '["orders:*"]'}
        credential = await CredentialStore(mock_redis).get(KEY)
        assert credential == ApiCredential(name="console", key=KEY, scopes=["orders:*"])

    @pytest.mark.asyncio
    async def test_provision_saves_every_credential(self, mock_redis):
        await CredentialStore(mock_redis).provision([
            ApiCredential(name="a", key="k1"), ApiCredential(name="b", key="k2"),
        ])
        assert mock_redis.hset.call_count == 2


class TestAuthenticator:
    @pytest.fixture
    def credential(self):
        return ApiCredential(name="reporting", key=KEY, scopes=["orders:read"])

    @pytest.mark.asyncio
    async def test_missing_token(self):
        with pytest.raises(Unauthenticated):
            await Authenticator(AsyncMock()).authenticate(None)

    @pytest.mark.asyncio
    async def test_unknown_token(self):
        credentials = AsyncMock()
        credentials.get.return_value = None
        with pytest.raises(Unauthenticated):
            await Authenticator(credentials).authenticate("sk_wrong")

    @pytest.mark.asyncio
    async def test_known_token(self, credential):
        credentials = AsyncMock()
        credentials.get.return_value = credential
        assert await Authenticator(credentials).authenticate(KEY) is credential

    def test_authorize_names_missing_scope(self, credential):
        with pytest.raises(Forbidden) as exc:
            Authenticator(AsyncMock()).authorize(credential, "orders", "write")
        assert exc.value.details == {"required_scope": "orders:write"}

    @pytest.mark.asyncio
    async def test_throttle_without_limiter(self, credential):
        assert await Authenticator(AsyncMock()).throttle(credential) is None

    @pytest.mark.asyncio
    async def test_throttle_over_limit_raises_with_headers(self, credential):
        limiter = AsyncMock()
        limiter.hit.return_value = RateLimitResult(allowed=False, limit=5, remaining=0, reset_in=12)
        with pytest.raises(RateLimitExceeded) as exc:
            await Authenticator(AsyncMock(), limiter).throttle(credential)
        assert exc.value.headers["Retry-After"] == "12"
        limiter.hit.assert_called_once_with(key_digest(KEY))
