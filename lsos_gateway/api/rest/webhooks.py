"""Webhook endpoint registration and delivery logs."""

from fastapi import APIRouter, Depends, status

from lsos_gateway.api.rest import envelope
from lsos_gateway.api.rest.dependencies import get_services, list_query, require_scope
from lsos_gateway.api.rest.payloads import WebhookCreate, WebhookUpdate
from lsos_gateway.helpers.serializers import request_log_to_dict, webhook_to_dict
from lsos_gateway.query import ListQuery, WEBHOOK_QUERY, run_query
from lsos_gateway.services import Services

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

read = Depends(require_scope("webhooks", "read"))
write = Depends(require_scope("webhooks", "write"))


@router.get("", dependencies=[read])
async def list_webhooks(query: ListQuery = Depends(list_query(WEBHOOK_QUERY)), services: Services = Depends(get_services)):
    page = run_query(await services.stores.webhooks.list_all(), query, WEBHOOK_QUERY)
    return envelope.collection(page, webhook_to_dict)


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[write])
async def create_webhook(payload: WebhookCreate, services: Services = Depends(get_services)):
    endpoint = await services.controller.create_webhook(payload.fields())
    # The secret is only ever shown on creation
    return envelope.item(webhook_to_dict(endpoint, include_secret=True))


@router.get("/{webhook_id}", dependencies=[read])
async def get_webhook(webhook_id: str, services: Services = Depends(get_services)):
    return envelope.item(webhook_to_dict(await services.stores.webhooks.require(webhook_id)))


@router.put("/{webhook_id}", dependencies=[write])
async def update_webhook(webhook_id: str, payload: WebhookUpdate, services: Services = Depends(get_services)):
    return envelope.item(webhook_to_dict(await services.controller.update_webhook(webhook_id, payload.fields())))


@router.delete("/{webhook_id}", dependencies=[write])
async def delete_webhook(webhook_id: str, services: Services = Depends(get_services)):
    await services.controller.delete_webhook(webhook_id)
    return envelope.deleted(webhook_id)


@router.get("/{webhook_id}/logs", dependencies=[read])
async def webhook_logs(webhook_id: str, services: Services = Depends(get_services)):
    await services.stores.webhooks.require(webhook_id)
    return envelope.items(await services.stores.webhooks.get_logs(webhook_id), request_log_to_dict)
