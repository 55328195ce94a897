"""Plaid routes: item linking and unlinking, item and account listing, and the signed webhook."""
import json
import logging

from fastapi import APIRouter, HTTPException, Request

from daily_paydown.deps import (CurrentUser, ItemResolverDep, LinkServiceDep,
                                SettingsDep, StoreDep, WebhookHandlerDep)
from daily_paydown.exceptions import ItemNotFoundError, UserNotFoundError
from daily_paydown.providers.core import ProviderError, ProviderErrorMapper
from daily_paydown.providers.plaid import SIGNATURE_HEADER, verify_signature
from daily_paydown.schemas import (LinkedAccountOut, LinkedItemOut,
                                   PublicTokenExchange)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/plaid", tags=["plaid"])

_errors = ProviderErrorMapper(resource_name="Item", api_name="Plaid")


@router.post("/exchange-public-token", response_model=LinkedItemOut)
async def exchange_public_token(
    payload: PublicTokenExchange,
    user: CurrentUser,
    links: LinkServiceDep,
) -> LinkedItemOut:
    """Link a new (or re-link an existing) item from a Plaid Link public token."""
    try:
        item = await links.link_item(user.id, payload.public_token, payload.institution_name)
    except (ProviderError, UserNotFoundError) as e:
        _errors.raise_http(e)
    return LinkedItemOut(
        item_id=item.item_id,
        institution_name=item.institution_name,
        status=item.status.value,
    )


@router.get("/items", response_model=list[LinkedItemOut])
def list_items(user: CurrentUser, store: StoreDep) -> list[LinkedItemOut]:
    """List the caller's linked items and their lifecycle status."""
    return [
        LinkedItemOut(
            item_id=item.item_id,
            institution_name=item.institution_name,
            status=item.status.value,
        )
        for item in store.list_items(user.id)
    ]


@router.delete("/items/{item_id}")
async def unlink_item(item_id: str, user: CurrentUser, links: LinkServiceDep) -> dict:
    """Remove one of the caller's items; selections pointing into it are cleared."""
    try:
        await links.unlink_item(user.id, item_id)
    except ItemNotFoundError as e:
        _errors.raise_http(e)
    return {"status": "ok", "item_id": item_id}


@router.get("/accounts", response_model=list[LinkedAccountOut])
async def list_accounts(user: CurrentUser, resolver: ItemResolverDep) -> list[LinkedAccountOut]:
    """List accounts across the caller's active items.

    Items the provider reports as expired are marked and left out.
    """
    return [
        LinkedAccountOut(
            item_id=linked.item.item_id,
            institution_name=linked.item.institution_name,
            account_id=linked.account.account_id,
            name=linked.account.name,
            mask=linked.account.mask,
            type=linked.account.type,
            subtype=linked.account.subtype,
        )
        for linked in await resolver.list_accounts(user.id)
    ]


@router.post("/webhook")
async def plaid_webhook(
    request: Request,
    settings: SettingsDep,
    handler: WebhookHandlerDep,
) -> dict:
    """Receive a Plaid webhook.

    The raw body must carry a valid hex HMAC-SHA256 signature; anything else
    is rejected with 401 before the payload is read.
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)
    if not verify_signature(body, signature, settings.plaid_webhook_secret):
        logger.warning("Rejected Plaid webhook with missing or invalid signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Webhook body is not valid JSON") from e
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Webhook body must be a JSON object")

    action = handler.handle(payload)
    return {"status": "ok", "action": action.value}
