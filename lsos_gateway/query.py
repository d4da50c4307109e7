"""
List queries: filtering, search, sorting and pagination.

Collections are loaded from their store and narrowed in memory. The query
string grammar is

    field=value            shorthand for field[eq]=value
    field[op]=value        op is one of FilterOperator
    query=text             case-insensitive search over searchable fields
    sort=field,-other      '-' sorts descending, ties break on public_id
    page=N&limit=M         offset pagination
    cursor=TOKEN&limit=M   cursor pagination (empty TOKEN for the first page)
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import cmp_to_key
from typing import Any, Iterable, Sequence

from lsos_gateway.enums import DriverStatus, FilterOperator, OrderStatus, VehicleStatus, WebhookStatus
from lsos_gateway.errors import InvalidQuery

RESERVED_PARAMS = frozenset({"page", "limit", "cursor", "sort", "query"})
MULTI_VALUE_OPERATORS = frozenset({FilterOperator.IN, FilterOperator.NIN, FilterOperator.BETWEEN})

_FILTER_KEY = re.compile(r"^(?P<field>[a-z_]+)\[(?P<op>[a-z]+)\]$")
_NULL = "null"


@dataclass(frozen=True)
class QuerySchema:
    """Fields a resource exposes to list queries, keyed by API name"""
    fields: dict[str, type]
    searchable: tuple[str, ...] = ()
    default_sort: str = "-created_at"


@dataclass
class Filter:
    field: str
    operator: FilterOperator
    value: Any


@dataclass
class ListQuery:
    filters: list[Filter] = field(default_factory=list)
    sort: list[tuple[str, bool]] = field(default_factory=list)  # (field, descending)
    search: str | None = None
    page: int = 1
    limit: int = 25
    cursor: str | None = None  # None means offset pagination

    @property
    def sort_token(self) -> str:
        return ",".join(f"-{name}" if desc else name for name, desc in self.sort)


@dataclass
class Page:
    items: list
    meta: dict


# === Parsing ===

def _attribute(name: str) -> str:
    return "public_id" if name == "id" else name


def coerce_value(raw: str, kind: type) -> Any:
    """Convert a query-string value to the field's type"""
    if raw == _NULL:
        return None
    try:
        if kind is bool:
            lowered = raw.lower()
            if lowered in ("true", "1", "yes"):
                return True
            if lowered in ("false", "0", "no"):
                return False
            raise ValueError(raw)
        if kind is int:
            return int(raw)
        if kind is float:
            return float(raw)
        if kind is datetime:
            value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        if issubclass(kind, Enum):
            return kind(raw)
    except ValueError as e:
        raise InvalidQuery(f"Invalid value '{raw}' for {kind.__name__} field", details={"value": raw}) from e
    return raw


def _parse_int(params: dict[str, str], name: str, default: int, low: int, high: int | None = None) -> int:
    raw = params.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise InvalidQuery(f"'{name}' must be an integer", details={"parameter": name}) from e
    if value < low or (high is not None and value > high):
        bound = f"between {low} and {high}" if high is not None else f"at least {low}"
        raise InvalidQuery(f"'{name}' must be {bound}", details={"parameter": name})
    return value


def _parse_sort(raw: str, schema: QuerySchema) -> list[tuple[str, bool]]:
    sort = []
    for token in filter(None, (t.strip() for t in raw.split(","))):
        descending = token.startswith("-")
        name = token.lstrip("-")
        if name not in schema.fields:
            raise InvalidQuery(f"Cannot sort by '{name}'", details={"field": name})
        sort.append((name, descending))
    return sort


def parse_list_query(pairs: Iterable[tuple[str, str]], schema: QuerySchema,
                     default_limit: int = 25, max_limit: int = 100) -> ListQuery:
    """Build a ListQuery from raw query-string pairs"""
    reserved: dict[str, str] = {}
    filters: list[Filter] = []

    for key, raw in pairs:
        if key in RESERVED_PARAMS:
            reserved[key] = raw
            continue

        match = _FILTER_KEY.match(key)
        name, op_name = (match["field"], match["op"]) if match else (key, FilterOperator.EQ.value)
        if name not in schema.fields:
            raise InvalidQuery(f"Unknown filter field '{name}'", details={"field": name})
        try:
            operator = FilterOperator(op_name)
        except ValueError as e:
            raise InvalidQuery(f"Unknown filter operator '{op_name}'", details={"operator": op_name}) from e

        kind = schema.fields[name]
        if operator == FilterOperator.CONTAINS:
            value: Any = raw.lower()
        elif operator in MULTI_VALUE_OPERATORS:
            value = [coerce_value(part.strip(), kind) for part in raw.split(",")]
            if operator == FilterOperator.BETWEEN and len(value) != 2:
                raise InvalidQuery("'between' takes exactly two comma-separated values", details={"field": name})
        else:
            value = coerce_value(raw, kind)
        filters.append(Filter(field=name, operator=operator, value=value))

    sort = _parse_sort(reserved.get("sort") or schema.default_sort, schema)
    return ListQuery(
        filters=filters,
        sort=sort,
        search=reserved.get("query") or None,
        page=_parse_int(reserved, "page", 1, 1),
        limit=_parse_int(reserved, "limit", default_limit, 1, max_limit),
        cursor=reserved.get("cursor"),
    )


# === Filtering ===

def _comparable(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def matches(item: Any, flt: Filter) -> bool:
    value = _comparable(getattr(item, _attribute(flt.field)))
    op = flt.operator

    if op == FilterOperator.EQ:
        return value == _comparable(flt.value)
    if op == FilterOperator.NE:
        return value != _comparable(flt.value)
    if op == FilterOperator.IN:
        return value in [_comparable(v) for v in flt.value]
    if op == FilterOperator.NIN:
        return value not in [_comparable(v) for v in flt.value]
    if value is None:
        return False
    if op == FilterOperator.CONTAINS:
        return flt.value in str(value).lower()

    if op == FilterOperator.BETWEEN:
        low, high = (_comparable(v) for v in flt.value)
        if low is None or high is None:
            return False
        return low <= value <= high

    target = _comparable(flt.value)
    if target is None:
        return False
    if op == FilterOperator.GT:
        return value > target
    if op == FilterOperator.GTE:
        return value >= target
    if op == FilterOperator.LT:
        return value < target
    return value <= target


def _matches_search(item: Any, text: str, schema: QuerySchema) -> bool:
    needle = text.lower()
    return any(
        (value := getattr(item, _attribute(name))) is not None and needle in str(_comparable(value)).lower()
        for name in schema.searchable
    )


def apply_filters(items: Iterable[Any], query: ListQuery, schema: QuerySchema) -> list:
    return [
        item for item in items
        if all(matches(item, flt) for flt in query.filters)
        and (query.search is None or _matches_search(item, query.search, schema))
    ]


# === Sorting ===

def sort_key(item: Any, sort: Sequence[tuple[str, bool]]) -> list:
    return [_comparable(getattr(item, _attribute(name))) for name, _ in sort] + [item.public_id]


def _compare_values(a: Any, b: Any) -> int:
    # None sorts before every value
    if a is None or b is None:
        return (a is not None) - (b is not None)
    return (a > b) - (a < b)


def compare_keys(a: Sequence, b: Sequence, sort: Sequence[tuple[str, bool]]) -> int:
    for (_, descending), va, vb in zip(sort, a, b):
        result = _compare_values(va, vb)
        if result:
            return -result if descending else result
    return _compare_values(a[-1], b[-1])


def sort_items(items: list, sort: Sequence[tuple[str, bool]]) -> list:
    return sorted(items, key=cmp_to_key(lambda a, b: compare_keys(sort_key(a, sort), sort_key(b, sort), sort)))


# === Pagination ===

def _encode_value(value: Any) -> Any:
    return {"$dt": value.isoformat()} if isinstance(value, datetime) else value


def _decode_value(value: Any) -> Any:
    return datetime.fromisoformat(value["$dt"]) if isinstance(value, dict) else value


def encode_cursor(key: Sequence, sort_token: str) -> str:
    payload = json.dumps({"s": sort_token, "k": [_encode_value(v) for v in key]}, separators=(",", ":"))
    return base64.urlsafe_b64encode(payload.encode()).decode().rstrip("=")


def decode_cursor(cursor: str, sort_token: str) -> list:
    try:
        padded = cursor + "=" * (-len(cursor) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()))
        key = [_decode_value(v) for v in payload["k"]]
        token = payload["s"]
    except (binascii.Error, ValueError, KeyError, TypeError) as e:
        raise InvalidQuery("Malformed cursor", details={"parameter": "cursor"}) from e
    if token != sort_token:
        raise InvalidQuery("Cursor was issued for a different sort order", details={"parameter": "cursor"})
    return key


def paginate_offset(items: list, page: int, limit: int) -> Page:
    total = len(items)
    offset = (page - 1) * limit
    window = items[offset:offset + limit]
    return Page(items=window, meta={
        "total": total,
        "per_page": limit,
        "current_page": page,
        "last_page": max(1, math.ceil(total / limit)),
        "from": offset + 1 if window else None,
        "to": offset + len(window) if window else None,
    })


def paginate_cursor(items: list, query: ListQuery) -> Page:
    """items must already be sorted by query.sort"""
    if query.cursor:
        after = decode_cursor(query.cursor, query.sort_token)
        items = [item for item in items if compare_keys(sort_key(item, query.sort), after, query.sort) > 0]
    window = items[:query.limit]
    has_more = len(items) > query.limit
    next_cursor = encode_cursor(sort_key(window[-1], query.sort), query.sort_token) if has_more else None
    return Page(items=window, meta={
        "per_page": query.limit,
        "next_cursor": next_cursor,
        "has_more": has_more,
    })


def run_query(items: Iterable[Any], query: ListQuery, schema: QuerySchema) -> Page:
    ordered = sort_items(apply_filters(items, query, schema), query.sort)
    if query.cursor is not None:
        return paginate_cursor(ordered, query)
    return paginate_offset(ordered, query.page, query.limit)


# === Resource schemas ===

ORDER_QUERY = QuerySchema(
    fields={
        "id": str, "tracking_number": str, "type": str, "status": OrderStatus,
        "pickup": str, "dropoff": str, "driver": str, "notes": str,
        "scheduled_at": datetime, "dispatched_at": datetime, "started_at": datetime,
        "completed_at": datetime, "canceled_at": datetime,
        "created_at": datetime, "updated_at": datetime,
    },
    searchable=("public_id", "tracking_number", "notes"),
)

DRIVER_QUERY = QuerySchema(
    fields={
        "id": str, "name": str, "email": str, "phone": str, "status": DriverStatus,
        "online": bool, "vehicle": str, "current_order": str,
        "location_updated_at": datetime, "created_at": datetime, "updated_at": datetime,
    },
    searchable=("public_id", "name", "email", "phone"),
)

VEHICLE_QUERY = QuerySchema(
    fields={
        "id": str, "make": str, "model": str, "year": int, "plate_number": str,
        "vin": str, "status": VehicleStatus, "driver": str,
        "created_at": datetime, "updated_at": datetime,
    },
    searchable=("public_id", "make", "model", "plate_number", "vin"),
)

PLACE_QUERY = QuerySchema(
    fields={
        "id": str, "name": str, "street1": str, "city": str, "province": str,
        "postal_code": str, "country": str, "created_at": datetime, "updated_at": datetime,
    },
    searchable=("public_id", "name", "street1", "street2", "city", "postal_code"),
)

WEBHOOK_QUERY = QuerySchema(
    fields={
        "id": str, "url": str, "status": WebhookStatus, "description": str,
        "created_at": datetime, "updated_at": datetime,
    },
    searchable=("public_id", "url", "description"),
)
