"""
Fixtures for REST API tests: the app wired to in-memory stores and a
credential table instead of Redis.
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from lsos_gateway.auth import Authenticator
from lsos_gateway.models import ApiCredential
from lsos_gateway.operations_controller import OperationsController
from lsos_gateway.services import Services
from main import create_app

ADMIN_KEY = "sk_test_admin"
READER_KEY = "sk_test_reader"

CREDENTIALS = {
    ADMIN_KEY: ApiCredential(name="admin", key=ADMIN_KEY, scopes=["*"]),
    READER_KEY: ApiCredential(name="reader", key=READER_KEY, scopes=["orders:read", "drivers:read"]),
}


class CredentialTable:
    async def get(self, api_key):
        return CREDENTIALS.get(api_key)


@pytest.fixture
def services(stores, events):
    authenticator = Authenticator(CredentialTable())
    return Services(
        redis=MagicMock(),
        stores=stores,
        credentials=MagicMock(),
        authenticator=authenticator,
        dispatcher=MagicMock(),
        events=events,
        controller=OperationsController(stores, events),
        default_page_size=25,
        max_page_size=100,
    )


@pytest.fixture
def client(services):
    app = create_app(services=services)
    with TestClient(app) as c:
        c.headers.update({"Authorization": f"Bearer {ADMIN_KEY}"})
        yield c


@pytest.fixture
def places(client):
    pickup = client.post("/v1/places", json={"name": "Warehouse", "city": "Singapore"}).json()["data"]
    dropoff = client.post("/v1/places", json={"name": "Customer", "city": "Singapore"}).json()["data"]
    return pickup, dropoff


@pytest.fixture
def driver(client):
    return client.post("/v1/drivers", json={"name": "Ana Souza"}).json()["data"]
