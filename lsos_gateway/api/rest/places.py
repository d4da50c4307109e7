from fastapi import APIRouter, Depends, status

from lsos_gateway.api.rest import envelope
from lsos_gateway.api.rest.dependencies import get_services, list_query, require_scope
from lsos_gateway.api.rest.payloads import PlaceCreate, PlaceUpdate
from lsos_gateway.helpers.serializers import place_to_dict
from lsos_gateway.query import ListQuery, PLACE_QUERY, run_query
from lsos_gateway.services import Services

router = APIRouter(prefix="/places", tags=["places"])

read = Depends(require_scope("places", "read"))
write = Depends(require_scope("places", "write"))


@router.get("", dependencies=[read])
async def list_places(query: ListQuery = Depends(list_query(PLACE_QUERY)), services: Services = Depends(get_services)):
    page = run_query(await services.stores.places.list_all(), query, PLACE_QUERY)
    return envelope.collection(page, place_to_dict)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[write])
async def create_place(payload: PlaceCreate, services: Services = Depends(get_services)):
    return envelope.item(place_to_dict(await services.controller.create_place(payload.fields())))


@router.get("/{place_id}", dependencies=[read])
async def get_place(place_id: str, services: Services = Depends(get_services)):
    return envelope.item(place_to_dict(await services.stores.places.require(place_id)))


@router.put("/{place_id}", dependencies=[write])
async def update_place(place_id: str, payload: PlaceUpdate, services: Services = Depends(get_services)):
    return envelope.item(place_to_dict(await services.controller.update_place(place_id, payload.fields())))


@router.delete("/{place_id}", dependencies=[write])
async def delete_place(place_id: str, services: Services = Depends(get_services)):
    await services.controller.delete_place(place_id)
    return envelope.deleted(place_id)
