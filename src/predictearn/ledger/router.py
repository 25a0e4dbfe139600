"""Admin ledger endpoints: /api/v1/admin/ledger/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity, require_admin
from predictearn.database import get_session
from predictearn.ledger import service
from predictearn.ledger.schemas import (
    GrantPointsRequest,
    GrantPointsResponse,
    LedgerCheckResponse,
    TransactionResponse,
)

router = APIRouter(prefix="/api/v1/admin/ledger", tags=["Ledger"])


@router.post("/grant", response_model=GrantPointsResponse)
async def grant_points(
    body: GrantPointsRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> GrantPointsResponse:
    transaction_id = await service.grant_points(db, admin.user_id, body.user_id, body.amount, body.notes)
    user = await service.get_balance(db, body.user_id)
    return GrantPointsResponse(
        transaction_id=transaction_id,
        user_id=user.id,
        points=user.points,
        order_points=user.order_points,
        balance=user.balance,
    )


@router.get("/transactions", response_model=list[TransactionResponse])
async def transactions(
    user_id: int | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[TransactionResponse]:
    """Latest transactions across users, or for one user."""
    rows = await service.list_transactions(db, user_id=user_id, limit=limit)
    return [TransactionResponse.model_validate(t) for t in rows]


@router.get("/verify/{user_id}", response_model=LedgerCheckResponse)
async def verify(
    user_id: int,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> LedgerCheckResponse:
    """Compare stored balances with the user's ledger rows."""
    check = await service.verify_balance(db, user_id)
    return LedgerCheckResponse(
        user_id=check.user_id,
        points=check.points,
        ledger_sum=check.ledger_sum,
        order_points=check.order_points,
        order_sum=check.order_sum,
        drift=check.drift,
        consistent=check.consistent,
    )
