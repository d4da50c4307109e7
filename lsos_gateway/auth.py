"""
Bearer API credentials.

Credentials are provisioned from the credentials file at startup and kept in
Redis under the SHA-256 digest of their key, so raw keys are never stored.
"""

from __future__ import annotations

import hashlib
import json

import redis.asyncio as redis
from loguru import logger

from lsos_gateway.errors import Forbidden, RateLimitExceeded, Unauthenticated
from lsos_gateway.models import ApiCredential
from lsos_gateway.rate_limiter import RateLimiter, RateLimitResult


def key_digest(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()


def parse_bearer(header: str | None) -> str | None:
    """Extract the token from an `Authorization: Bearer <token>` header"""
    if not header:
        return None
    scheme, _, token = header.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class CredentialStore:
    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def key(self, api_key: str) -> str:
        return f"api_credential:{key_digest(api_key)}"

    async def save(self, credential: ApiCredential) -> None:
        await self.redis.hset(self.key(credential.key), mapping={
            'name': credential.name,
            'scopes': json.dumps(credential.scopes),
        })

    async def get(self, api_key: str) -> ApiCredential | None:
        data = await self.redis.hgetall(self.key(api_key))
        if not data:
            return None
        return ApiCredential(name=data['name'], key=api_key, scopes=json.loads(data['scopes']))

    async def provision(self, credentials: list[ApiCredential]) -> None:
        for credential in credentials:
            await self.save(credential)
        logger.info("Provisioned {} API credential(s)", len(credentials))


class Authenticator:
    def __init__(self, credentials: CredentialStore, rate_limiter: RateLimiter | None = None):
        self.credentials = credentials
        self.rate_limiter = rate_limiter

    async def authenticate(self, token: str | None) -> ApiCredential:
        if not token:
            raise Unauthenticated("Missing bearer token")
        credential = await self.credentials.get(token)
        if credential is None:
            raise Unauthenticated("Invalid API credential")
        return credential

    def authorize(self, credential: ApiCredential, resource: str, action: str) -> None:
        if not credential.allows(resource, action):
            raise Forbidden(
                f"Credential '{credential.name}' may not {action} {resource}",
                details={"required_scope": f"{resource}:{action}"},
            )

    async def throttle(self, credential: ApiCredential) -> RateLimitResult | None:
        """Count a request against the credential, raising when over the limit"""
        if self.rate_limiter is None:
            return None
        result = await self.rate_limiter.hit(key_digest(credential.key))
        if not result.allowed:
            logger.warning("Rate limit exceeded for credential {}", credential.name)
            raise RateLimitExceeded("Too many requests", details={"retry_after": result.reset_in},
                                    headers=result.headers())
        return result
