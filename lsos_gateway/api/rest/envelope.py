"""Response envelopes: {"data": ...} with "meta" for collections."""

from typing import Any, Callable, Iterable

from lsos_gateway.query import Page


def item(data: dict[str, Any]) -> dict:
    return {"data": data}


def collection(page: Page, render: Callable[[Any], dict]) -> dict:
    return {"data": [render(i) for i in page.items], "meta": page.meta}


def items(rows: Iterable[Any], render: Callable[[Any], dict]) -> dict:
    rendered = [render(r) for r in rows]
    return {"data": rendered, "meta": {"total": len(rendered)}}


def deleted(public_id: str) -> dict:
    return {"data": {"id": public_id, "deleted": True}}
