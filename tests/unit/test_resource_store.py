"""
Tests for ResourceStore and WebhookStore persistence via mock Redis.

Verifies that resources survive serialize → HSET → HGETALL → deserialize
with None values, enums and nested points intact.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from lsos_gateway.enums import DriverStatus, OrderStatus, WebhookEvent
from lsos_gateway.errors import NotFound
from lsos_gateway.helpers.deserializers import from_redis_mapping
from lsos_gateway.helpers.serializers import to_redis_mapping
from lsos_gateway.models import Driver, Order, Point, WebhookEndpoint, WebhookRequestLog
from lsos_gateway.resource_store import REQUEST_LOG_LIMIT, Stores


def fake_hash_redis():
    """AsyncMock redis whose hset/hgetall share one dict of hashes"""
    hashes: dict[str, dict] = {}
    r = AsyncMock()

    async def fake_hset(key, mapping):
        hashes.setdefault(key, {}).update(mapping)

    async def fake_hgetall(key):
        return dict(hashes.get(key, {}))

    async def fake_scan_iter(match):
        prefix = match.rstrip("*")
        for key in list(hashes):
            if key.startswith(prefix):
                yield key

    r.hset = fake_hset
    r.hgetall = fake_hgetall
    r.scan_iter = fake_scan_iter

    pipe = MagicMock()
    queued = []
    pipe.hgetall.side_effect = lambda key: queued.append(key)

    async def execute():
        results = [dict(hashes.get(key, {})) for key in queued]
        queued.clear()
        return results

    pipe.execute = execute
    r.pipeline = MagicMock(return_value=pipe)
    return r, hashes


def make_driver(**overrides):
    fields = dict(name="Ana Souza", phone="+5511999990000", location=Point(-23.55, -46.63))
    fields.update(overrides)
    return Driver(**fields)


class TestRedisMapping:
    def test_every_value_is_json(self):
        mapping = to_redis_mapping({"a": None, "b": True, "c": {"x": 1}})
        assert mapping == {"a": "null", "b": "true", "c": '{"x": 1}'}

    def test_empty_hash_is_none(self):
        assert from_redis_mapping({}) is None


class TestResourceStore:
    @pytest.mark.asyncio
    async def test_save_writes_hash_under_resource_key(self, mock_redis):
        stores = Stores(mock_redis)
        driver = make_driver()
        result = await stores.drivers.save(driver)
        assert result is driver
        key = mock_redis.hset.call_args[0][0]
        assert key == f"driver:{driver.public_id}"

    @pytest.mark.asyncio
    async def test_get_returns_none_when_missing(self, mock_redis):
        mock_redis.hgetall.return_value = {}
        stores = Stores(mock_redis)
        assert await stores.orders.get("order_missing") is None

    @pytest.mark.asyncio
    async def test_require_raises_not_found(self, mock_redis):
        mock_redis.hgetall.return_value = {}
        stores = Stores(mock_redis)
        with pytest.raises(NotFound) as exc:
            await stores.orders.require("order_missing")
        assert exc.value.details == {"resource": "order", "id": "order_missing"}

    @pytest.mark.asyncio
    async def test_driver_round_trip(self):
        r, _ = fake_hash_redis()
        stores = Stores(r)
        driver = make_driver(status=DriverStatus.SUSPENDED, online=True)
        await stores.drivers.save(driver)
        recovered = await stores.drivers.get(driver.public_id)
        assert recovered == driver

    @pytest.mark.asyncio
    async def test_order_round_trip_keeps_timestamps(self):
        r, _ = fake_hash_redis()
        stores = Stores(r)
        order = Order(pickup="place_aaaaaaa", dropoff="place_bbbbbbb", status=OrderStatus.DISPATCHED,
                      dispatched_at=datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc), meta={"ref": "PO-1"})
        await stores.orders.save(order)
        recovered = await stores.orders.get(order.public_id)
        assert recovered.dispatched_at == order.dispatched_at
        assert recovered.started_at is None
        assert recovered.meta == {"ref": "PO-1"}
        assert recovered.tracking_number == order.tracking_number

    @pytest.mark.asyncio
    async def test_list_all_only_returns_own_resource(self):
        r, _ = fake_hash_redis()
        stores = Stores(r)
        drivers = [make_driver(name=f"Driver {i}") for i in range(3)]
        for driver in drivers:
            await stores.drivers.save(driver)
        await stores.orders.save(Order(pickup="place_aaaaaaa", dropoff="place_bbbbbbb"))

        listed = await stores.drivers.list_all()
        assert {d.public_id for d in listed} == {d.public_id for d in drivers}

    @pytest.mark.asyncio
    async def test_list_all_empty(self):
        r, _ = fake_hash_redis()
        assert await Stores(r).places.list_all() == []

    @pytest.mark.asyncio
    async def test_delete(self, mock_redis):
        mock_redis.delete.return_value = 1
        stores = Stores(mock_redis)
        assert await stores.vehicles.delete("vehicle_abc1234") is True
        mock_redis.delete.assert_called_once_with("vehicle:vehicle_abc1234")


class TestWebhookStore:
    @pytest.mark.asyncio
    async def test_secret_is_persisted(self):
        r, hashes = fake_hash_redis()
        stores = Stores(r)
        endpoint = WebhookEndpoint(url="https://example.com/hook", secret="s" * 32,
                                   events=[WebhookEvent.ORDER_CREATED])
        await stores.webhooks.save(endpoint)
        assert json.loads(hashes[f"webhook:{endpoint.public_id}"]["secret"]) == "s" * 32
        recovered = await stores.webhooks.get(endpoint.public_id)
        assert recovered.secret == endpoint.secret
        assert recovered.events == [WebhookEvent.ORDER_CREATED]

    @pytest.mark.asyncio
    async def test_append_log_pushes_and_trims(self, mock_redis):
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[1, True])
        mock_redis.pipeline = MagicMock(return_value=pipe)
        stores = Stores(mock_redis)
        log = WebhookRequestLog(webhook_id="webhook_abc1234", event_id="event_1", event=WebhookEvent.ORDER_CREATED,
                                success=True, attempts=1, status_code=200)

        await stores.webhooks.append_log(log)

        key, raw = pipe.lpush.call_args[0]
        assert key == "webhook_log:webhook_abc1234"
        assert json.loads(raw)["status_code"] == 200
        pipe.ltrim.assert_called_once_with(key, 0, REQUEST_LOG_LIMIT - 1)

    @pytest.mark.asyncio
    async def test_get_logs_decodes_entries(self, mock_redis):
        mock_redis.lrange.return_value = [json.dumps({
            "webhook": "webhook_abc1234", "event_id": "event_1", "event": "order.created",
            "success": False, "attempts": 5, "status_code": 503, "error": "HTTP 503",
            "duration_ms": 12, "created_at": "2024-05-01T12:00:00+00:00",
        })]
        stores = Stores(mock_redis)
        logs = await stores.webhooks.get_logs("webhook_abc1234")
        assert logs[0].attempts == 5
        assert logs[0].success is False
        assert logs[0].event == WebhookEvent.ORDER_CREATED

    @pytest.mark.asyncio
    async def test_delete_removes_logs(self, mock_redis):
        mock_redis.delete.return_value = 1
        stores = Stores(mock_redis)
        await stores.webhooks.delete("webhook_abc1234")
        deleted = [c.args[0] for c in mock_redis.delete.call_args_list]
        assert deleted == ["webhook:webhook_abc1234", "webhook_log:webhook_abc1234"]
