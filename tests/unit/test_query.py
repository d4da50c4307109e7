"""
Tests for list query parsing, filtering, sorting and pagination.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from lsos_gateway.enums import FilterOperator, OrderStatus
from lsos_gateway.errors import InvalidQuery
from lsos_gateway.models import Order
from lsos_gateway.query import (
    DRIVER_QUERY,
    ORDER_QUERY,
    coerce_value,
    decode_cursor,
    encode_cursor,
    parse_list_query,
    run_query,
)

BASE = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_order(public_id, minutes=0, status=OrderStatus.CREATED, notes=None, driver=None):
    return Order(
        public_id=public_id,
        pickup="place_aaaaaaa",
        dropoff="place_bbbbbbb",
        status=status,
        notes=notes,
        driver=driver,
        created_at=BASE + timedelta(minutes=minutes),
        updated_at=BASE + timedelta(minutes=minutes),
    )


@pytest.fixture
def orders():
    return [
        make_order("order_0000001", 0, OrderStatus.CREATED, notes="Fragile glassware"),
        make_order("order_0000002", 10, OrderStatus.DISPATCHED, driver="driver_aaaaaaa"),
        make_order("order_0000003", 20, OrderStatus.COMPLETED),
        make_order("order_0000004", 30, OrderStatus.CANCELED, notes="Customer moved"),
        make_order("order_0000005", 30, OrderStatus.CREATED),
    ]


def query(params, schema=ORDER_QUERY, **kwargs):
    return parse_list_query(list(params.items()) if isinstance(params, dict) else params, schema, **kwargs)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParse:
    def test_defaults(self):
        q = query({})
        assert q.filters == []
        assert q.sort == [("created_at", True)]
        assert q.page == 1
        assert q.limit == 25
        assert q.cursor is None

    def test_bare_field_is_equality(self):
        q = query({"status": "created"})
        assert q.filters[0].operator == FilterOperator.EQ
        assert q.filters[0].value == OrderStatus.CREATED

    def test_bracket_operator_and_list_values(self):
        q = query({"status[in]": "created,dispatched"})
        assert q.filters[0].operator == FilterOperator.IN
        assert q.filters[0].value == [OrderStatus.CREATED, OrderStatus.DISPATCHED]

    def test_between_needs_two_values(self):
        with pytest.raises(InvalidQuery):
            query({"created_at[between]": "2024-05-01T00:00:00Z"})

    def test_unknown_field_rejected(self):
        with pytest.raises(InvalidQuery) as exc:
            query({"colour": "red"})
        assert exc.value.details == {"field": "colour"}

    def test_unknown_operator_rejected(self):
        with pytest.raises(InvalidQuery):
            query({"status[like]": "created"})

    def test_invalid_enum_value_rejected(self):
        with pytest.raises(InvalidQuery):
            query({"status": "lost"})

    def test_limit_above_max_rejected(self):
        with pytest.raises(InvalidQuery):
            query({"limit": "101"})

    def test_page_must_be_positive_integer(self):
        with pytest.raises(InvalidQuery):
            query({"page": "0"})
        with pytest.raises(InvalidQuery):
            query({"page": "two"})

    def test_sort_on_unknown_field_rejected(self):
        with pytest.raises(InvalidQuery):
            query({"sort": "-colour"})

    def test_custom_limits(self):
        q = query({}, default_limit=10, max_limit=20)
        assert q.limit == 10


class TestCoerce:
    def test_null(self):
        assert coerce_value("null", str) is None

    def test_bool(self):
        assert coerce_value("true", bool) is True
        assert coerce_value("0", bool) is False
        with pytest.raises(InvalidQuery):
            coerce_value("maybe", bool)

    def test_naive_datetime_is_utc(self):
        assert coerce_value("2024-05-01T12:00:00", datetime) == BASE

    def test_zulu_datetime(self):
        assert coerce_value("2024-05-01T12:00:00Z", datetime) == BASE


# ---------------------------------------------------------------------------
# Filtering and search
# ---------------------------------------------------------------------------

class TestFilter:
    def test_equality(self, orders):
        page = run_query(orders, query({"status": "created"}), ORDER_QUERY)
        assert {o.public_id for o in page.items} == {"order_0000001", "order_0000005"}

    def test_not_in(self, orders):
        page = run_query(orders, query({"status[nin]": "completed,canceled"}), ORDER_QUERY)
        assert len(page.items) == 3

    def test_null_equality(self, orders):
        page = run_query(orders, query({"driver": "null"}), ORDER_QUERY)
        assert "order_0000002" not in {o.public_id for o in page.items}
        assert page.meta["total"] == 4

    def test_range_excludes_missing_values(self, orders):
        page = run_query(orders, query({"dispatched_at[gte]": "2024-01-01T00:00:00Z"}), ORDER_QUERY)
        assert page.items == []

    def test_datetime_between(self, orders):
        q = query({"created_at[between]": "2024-05-01T12:05:00Z,2024-05-01T12:20:00Z"})
        page = run_query(orders, q, ORDER_QUERY)
        assert [o.public_id for o in page.items] == ["order_0000003", "order_0000002"]

    def test_contains_is_case_insensitive(self, orders):
        page = run_query(orders, query({"notes[contains]": "GLASS"}), ORDER_QUERY)
        assert [o.public_id for o in page.items] == ["order_0000001"]

    def test_search_across_fields(self, orders):
        page = run_query(orders, query({"query": "moved"}), ORDER_QUERY)
        assert [o.public_id for o in page.items] == ["order_0000004"]

    def test_search_by_id(self, orders):
        page = run_query(orders, query({"query": "0000003"}), ORDER_QUERY)
        assert [o.public_id for o in page.items] == ["order_0000003"]

    def test_filters_combine_with_and(self, orders):
        q = query([("status", "created"), ("created_at[gt]", "2024-05-01T12:00:00Z")])
        page = run_query(orders, q, ORDER_QUERY)
        assert [o.public_id for o in page.items] == ["order_0000005"]


# ---------------------------------------------------------------------------
# Sorting and pagination
# ---------------------------------------------------------------------------

class TestSortAndPaginate:
    def test_default_newest_first_with_id_tie_break(self, orders):
        page = run_query(orders, query({}), ORDER_QUERY)
        assert [o.public_id for o in page.items] == [
            "order_0000004", "order_0000005", "order_0000003", "order_0000002", "order_0000001",
        ]

    def test_ascending_sort(self, orders):
        page = run_query(orders, query({"sort": "created_at"}), ORDER_QUERY)
        assert page.items[0].public_id == "order_0000001"

    def test_none_sorts_first(self, orders):
        page = run_query(orders, query({"sort": "notes"}), ORDER_QUERY)
        assert page.items[0].notes is None
        assert page.items[-1].notes == "Fragile glassware"

    def test_offset_meta(self, orders):
        page = run_query(orders, query({"page": "2", "limit": "2"}), ORDER_QUERY)
        assert [o.public_id for o in page.items] == ["order_0000003", "order_0000002"]
        assert page.meta == {
            "total": 5, "per_page": 2, "current_page": 2, "last_page": 3, "from": 3, "to": 4,
        }

    def test_page_past_the_end(self, orders):
        page = run_query(orders, query({"page": "9", "limit": "2"}), ORDER_QUERY)
        assert page.items == []
        assert page.meta["from"] is None
        assert page.meta["to"] is None

    def test_empty_collection_has_one_page(self):
        page = run_query([], query({}), ORDER_QUERY)
        assert page.meta["last_page"] == 1
        assert page.meta["total"] == 0

    def test_cursor_walks_every_item_once(self, orders):
        seen = []
        cursor = ""
        while True:
            page = run_query(orders, query({"cursor": cursor, "limit": "2"}), ORDER_QUERY)
            seen.extend(o.public_id for o in page.items)
            if not page.meta["has_more"]:
                assert page.meta["next_cursor"] is None
                break
            cursor = page.meta["next_cursor"]
        assert seen == ["order_0000004", "order_0000005", "order_0000003", "order_0000002", "order_0000001"]

    def test_cursor_is_stable_under_inserts_before_it(self, orders):
        first = run_query(orders, query({"cursor": "", "limit": "2"}), ORDER_QUERY)
        orders.append(make_order("order_0000009", 60))
        second = run_query(orders, query({"cursor": first.meta["next_cursor"], "limit": "2"}), ORDER_QUERY)
        assert [o.public_id for o in second.items] == ["order_0000003", "order_0000002"]

    def test_cursor_from_another_sort_rejected(self, orders):
        page = run_query(orders, query({"cursor": "", "limit": "2"}), ORDER_QUERY)
        with pytest.raises(InvalidQuery):
            run_query(orders, query({"cursor": page.meta["next_cursor"], "sort": "created_at"}), ORDER_QUERY)

    def test_malformed_cursor_rejected(self):
        with pytest.raises(InvalidQuery):
            decode_cursor("not-a-cursor!!", "-created_at")

    def test_cursor_keeps_datetimes(self):
        token = encode_cursor([BASE, "order_0000001"], "-created_at")
        assert decode_cursor(token, "-created_at") == [BASE, "order_0000001"]

    def test_bool_filter_on_drivers(self):
        q = parse_list_query([("online", "true")], DRIVER_QUERY)
        assert q.filters[0].value is True
