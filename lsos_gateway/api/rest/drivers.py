"""Driver endpoints: CRUD, location tracking and online toggling."""

from fastapi import APIRouter, Depends, status

from lsos_gateway.api.rest import envelope
from lsos_gateway.api.rest.dependencies import get_services, list_query, require_scope
from lsos_gateway.api.rest.payloads import DriverCreate, DriverUpdate, TrackPayload
from lsos_gateway.helpers.serializers import driver_to_dict
from lsos_gateway.query import DRIVER_QUERY, ListQuery, run_query
from lsos_gateway.services import Services

router = APIRouter(prefix="/drivers", tags=["drivers"])

read = Depends(require_scope("drivers", "read"))
write = Depends(require_scope("drivers", "write"))


@router.get("", dependencies=[read])
async def list_drivers(query: ListQuery = Depends(list_query(DRIVER_QUERY)), services: Services = Depends(get_services)):
    page = run_query(await services.stores.drivers.list_all(), query, DRIVER_QUERY)
    return envelope.collection(page, driver_to_dict)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[write])
async def create_driver(payload: DriverCreate, services: Services = Depends(get_services)):
    return envelope.item(driver_to_dict(await services.controller.create_driver(payload.fields())))


@router.get("/{driver_id}", dependencies=[read])
async def get_driver(driver_id: str, services: Services = Depends(get_services)):
    return envelope.item(driver_to_dict(await services.stores.drivers.require(driver_id)))


@router.put("/{driver_id}", dependencies=[write])
async def update_driver(driver_id: str, payload: DriverUpdate, services: Services = Depends(get_services)):
    return envelope.item(driver_to_dict(await services.controller.update_driver(driver_id, payload.fields())))


@router.delete("/{driver_id}", dependencies=[write])
async def delete_driver(driver_id: str, services: Services = Depends(get_services)):
    await services.controller.delete_driver(driver_id)
    return envelope.deleted(driver_id)


@router.post("/{driver_id}/track", dependencies=[write])
async def track_driver(driver_id: str, payload: TrackPayload, services: Services = Depends(get_services)):
    driver = await services.controller.track_driver(
        driver_id, payload.location.model_dump(), heading=payload.heading, speed=payload.speed)
    return envelope.item(driver_to_dict(driver))


@router.post("/{driver_id}/toggle-online", dependencies=[write])
async def toggle_online(driver_id: str, services: Services = Depends(get_services)):
    return envelope.item(driver_to_dict(await services.controller.toggle_online(driver_id)))
