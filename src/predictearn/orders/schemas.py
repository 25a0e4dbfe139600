"""Response schemas for the webhook endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class WebhookAck(BaseModel):
    """Always ``success=True``; ``action`` says what the event did."""

    success: bool = True
    action: str
    order_id: int | None = None
    status: str | None = None
    previous_status: str | None = None


class RecentOrder(BaseModel):
    wordpress_order_id: int
    status: str
    customer_email: str
    total: Decimal
    currency: str
    is_processed: bool
    processing_error: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class WebhookStats(BaseModel):
    total_orders: int
    processed_orders: int
    error_orders: int
    pending_orders: int


class WebhookStatusResponse(BaseModel):
    stats: WebhookStats
    recent_orders: list[RecentOrder]
