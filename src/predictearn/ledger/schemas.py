"""Request/response schemas for ledger endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class TransactionResponse(BaseModel):
    id: int
    user_id: int
    admin_id: int | None
    amount: int
    reason: str
    partition: str
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class GrantPointsRequest(BaseModel):
    """Admin grant; a negative amount deducts."""

    user_id: int
    amount: int
    notes: str | None = Field(None, max_length=500)


class GrantPointsResponse(BaseModel):
    transaction_id: int
    user_id: int
    points: int
    order_points: int
    balance: int


class LedgerCheckResponse(BaseModel):
    user_id: int
    points: int
    ledger_sum: int
    order_points: int
    order_sum: int
    drift: int
    consistent: bool
