from fastapi import APIRouter, Depends, status

from lsos_gateway.api.rest import envelope
from lsos_gateway.api.rest.dependencies import get_services, list_query, require_scope
from lsos_gateway.api.rest.payloads import VehicleCreate, VehicleUpdate
from lsos_gateway.helpers.serializers import vehicle_to_dict
from lsos_gateway.query import ListQuery, VEHICLE_QUERY, run_query
from lsos_gateway.services import Services

router = APIRouter(prefix="/vehicles", tags=["vehicles"])

read = Depends(require_scope("vehicles", "read"))
write = Depends(require_scope("vehicles", "write"))


@router.get("", dependencies=[read])
async def list_vehicles(query: ListQuery = Depends(list_query(VEHICLE_QUERY)), services: Services = Depends(get_services)):
    page = run_query(await services.stores.vehicles.list_all(), query, VEHICLE_QUERY)
    return envelope.collection(page, vehicle_to_dict)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[write])
async def create_vehicle(payload: VehicleCreate, services: Services = Depends(get_services)):
    return envelope.item(vehicle_to_dict(await services.controller.create_vehicle(payload.fields())))


@router.get("/{vehicle_id}", dependencies=[read])
async def get_vehicle(vehicle_id: str, services: Services = Depends(get_services)):
    return envelope.item(vehicle_to_dict(await services.stores.vehicles.require(vehicle_id)))


@router.put("/{vehicle_id}", dependencies=[write])
async def update_vehicle(vehicle_id: str, payload: VehicleUpdate, services: Services = Depends(get_services)):
    return envelope.item(vehicle_to_dict(await services.controller.update_vehicle(vehicle_id, payload.fields())))


@router.delete("/{vehicle_id}", dependencies=[write])
async def delete_vehicle(vehicle_id: str, services: Services = Depends(get_services)):
    await services.controller.delete_vehicle(vehicle_id)
    return envelope.deleted(vehicle_id)
