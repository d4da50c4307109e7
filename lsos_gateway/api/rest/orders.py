"""Order endpoints: CRUD, driver assignment and status transitions."""

from fastapi import APIRouter, Depends, status

from lsos_gateway.api.rest import envelope
from lsos_gateway.api.rest.dependencies import get_services, list_query, require_scope
from lsos_gateway.api.rest.payloads import AssignPayload, OrderCreate, OrderUpdate, StatusPayload
from lsos_gateway.helpers.serializers import order_to_dict
from lsos_gateway.query import ListQuery, ORDER_QUERY, run_query
from lsos_gateway.services import Services

router = APIRouter(prefix="/orders", tags=["orders"])

read = Depends(require_scope("orders", "read"))
write = Depends(require_scope("orders", "write"))


@router.get("", dependencies=[read])
async def list_orders(query: ListQuery = Depends(list_query(ORDER_QUERY)), services: Services = Depends(get_services)):
    page = run_query(await services.stores.orders.list_all(), query, ORDER_QUERY)
    return envelope.collection(page, order_to_dict)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[write])
async def create_order(payload: OrderCreate, services: Services = Depends(get_services)):
    return envelope.item(order_to_dict(await services.controller.create_order(payload.fields())))


@router.get("/{order_id}", dependencies=[read])
async def get_order(order_id: str, services: Services = Depends(get_services)):
    return envelope.item(order_to_dict(await services.stores.orders.require(order_id)))


@router.put("/{order_id}", dependencies=[write])
async def update_order(order_id: str, payload: OrderUpdate, services: Services = Depends(get_services)):
    return envelope.item(order_to_dict(await services.controller.update_order(order_id, payload.fields())))


@router.delete("/{order_id}", dependencies=[write])
async def delete_order(order_id: str, services: Services = Depends(get_services)):
    await services.controller.delete_order(order_id)
    return envelope.deleted(order_id)


@router.post("/{order_id}/assign", dependencies=[write])
async def assign_driver(order_id: str, payload: AssignPayload, services: Services = Depends(get_services)):
    return envelope.item(order_to_dict(await services.controller.assign_driver(order_id, payload.driver)))


@router.post("/{order_id}/status", dependencies=[write])
async def update_status(order_id: str, payload: StatusPayload, services: Services = Depends(get_services)):
    return envelope.item(order_to_dict(await services.controller.transition(order_id, payload.status)))


@router.post("/{order_id}/dispatch", dependencies=[write])
async def dispatch_order(order_id: str, services: Services = Depends(get_services)):
    return envelope.item(order_to_dict(await services.controller.dispatch_order(order_id)))


@router.post("/{order_id}/start", dependencies=[write])
async def start_order(order_id: str, services: Services = Depends(get_services)):
    return envelope.item(order_to_dict(await services.controller.start_order(order_id)))


@router.post("/{order_id}/complete", dependencies=[write])
async def complete_order(order_id: str, services: Services = Depends(get_services)):
    return envelope.item(order_to_dict(await services.controller.complete_order(order_id)))


@router.post("/{order_id}/cancel", dependencies=[write])
async def cancel_order(order_id: str, services: Services = Depends(get_services)):
    return envelope.item(order_to_dict(await services.controller.cancel_order(order_id)))
