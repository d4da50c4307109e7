"""FastAPI dependencies for the REST API: services, credentials, list queries."""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Request, Response

from lsos_gateway.auth import parse_bearer
from lsos_gateway.models import ApiCredential
from lsos_gateway.query import ListQuery, QuerySchema, parse_list_query
from lsos_gateway.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_scope(resource: str, action: str) -> Callable[[Request, Response], Awaitable[ApiCredential]]:
    """Authenticate the bearer credential, count it against the rate limit and check its scope"""

    async def dependency(request: Request, response: Response) -> ApiCredential:
        authenticator = get_services(request).authenticator
        credential = await authenticator.authenticate(parse_bearer(request.headers.get("authorization")))
        limit = await authenticator.throttle(credential)
        if limit is not None:
            response.headers.update(limit.headers())
        authenticator.authorize(credential, resource, action)
        request.state.credential = credential
        return credential

    return dependency


def list_query(schema: QuerySchema) -> Callable[[Request], ListQuery]:
    def dependency(request: Request) -> ListQuery:
        services = get_services(request)
        return parse_list_query(
            request.query_params.multi_items(),
            schema,
            default_limit=services.default_page_size,
            max_limit=services.max_page_size,
        )

    return dependency
