"""Storefront webhooks: /api/v1/webhooks/*.

The order endpoints always answer 200 with a success acknowledgement, even
when processing fails, so the storefront does not retry and re-apply an
event. Failures are logged and noted on the order row instead.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity, require_admin
from predictearn.config import get_settings
from predictearn.database import get_session
from predictearn.errors import ExternalEventError
from predictearn.orders import service
from predictearn.orders.payload import parse_order, peek_order_id
from predictearn.orders.schemas import WebhookAck, WebhookStatusResponse
from predictearn.orders.service import OrderAck
from predictearn.orders.signature import SIGNATURE_HEADER, verify_signature

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/webhooks", tags=["Webhooks"])


async def _read_payload(request: Request) -> Any:  # noqa: ANN401
    body = await request.body()
    if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), get_settings().webhook_secret):
        logger.warning("webhook_signature_rejected", path=request.url.path)
        raise HTTPException(status_code=401, detail="Invalid webhook signature")
    try:
        return json.loads(body or b"null")
    except ValueError:
        return None


async def _process(
    db: AsyncSession,
    event_name: str,
    payload: Any,  # noqa: ANN401
    handler: Callable[[], Awaitable[OrderAck]],
) -> WebhookAck:
    order_id = peek_order_id(payload)
    try:
        ack = await handler()
    except ExternalEventError as e:
        logger.warning("webhook_payload_rejected", webhook_event=event_name, order_id=order_id, error=e.message)
        return WebhookAck(action="ignored", order_id=order_id)
    except Exception as e:
        logger.exception("webhook_processing_failed", webhook_event=event_name, order_id=order_id)
        await db.rollback()
        if order_id is not None:
            try:
                await service.record_processing_error(db, order_id, str(e) or type(e).__name__)
            except SQLAlchemyError:
                await db.rollback()
                logger.exception("webhook_error_not_recorded", order_id=order_id)
        return WebhookAck(action="failed", order_id=order_id)
    return WebhookAck(**ack.as_dict())


@router.post("/order/created", response_model=WebhookAck)
async def order_created(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> WebhookAck:
    payload = await _read_payload(request)

    async def run() -> OrderAck:
        return await service.handle_created(db, parse_order(payload))

    return await _process(db, "order.created", payload, run)


@router.post("/order/updated", response_model=WebhookAck)
async def order_updated(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> WebhookAck:
    payload = await _read_payload(request)

    async def run() -> OrderAck:
        return await service.handle_updated(db, parse_order(payload))

    return await _process(db, "order.updated", payload, run)


@router.post("/order/deleted", response_model=WebhookAck)
async def order_deleted(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> WebhookAck:
    payload = await _read_payload(request)

    async def run() -> OrderAck:
        order_id = peek_order_id(payload)
        if order_id is None:
            raise ExternalEventError("Order id missing or not an integer")
        return await service.handle_deleted(db, order_id)

    return await _process(db, "order.deleted", payload, run)


@router.get("/status", response_model=WebhookStatusResponse)
async def status(
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> WebhookStatusResponse:
    """Order counts and the most recent orders, for operators."""
    return WebhookStatusResponse.model_validate(await service.webhook_status(db), from_attributes=True)
