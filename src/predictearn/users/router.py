"""User router: /api/v1/users/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity, get_current_identity
from predictearn.database import get_session
from predictearn.ledger import service as ledger
from predictearn.ledger.schemas import TransactionResponse
from predictearn.referrals import service as referrals
from predictearn.referrals.schemas import (
    ReferralCodeRequest,
    ReferralCodeResponse,
    ReferralResponse,
    ReferralSummary,
)
from predictearn.users import service
from predictearn.users.schemas import RegisterRequest, UserResponse

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    user = await service.register_user(db, body.name, body.email, body.password, body.referral_code)
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Own profile and balance."""
    return UserResponse.model_validate(await service.get_user(db, identity.user_id))


@router.get("/me/transactions", response_model=list[TransactionResponse])
async def my_transactions(
    limit: int = Query(100, ge=1, le=500),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> list[TransactionResponse]:
    rows = await ledger.list_transactions(db, user_id=identity.user_id, limit=limit)
    return [TransactionResponse.model_validate(t) for t in rows]


# ---------------------------------------------------------------------------
# Referrals
# ---------------------------------------------------------------------------


@router.get("/me/referrals", response_model=ReferralSummary)
async def my_referrals(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> ReferralSummary:
    user = await service.get_user(db, identity.user_id)
    rows = await referrals.list_referrals(db, identity.user_id)
    return ReferralSummary(
        referral_code=user.referral_code,
        total_successful_referrals=user.total_successful_referrals,
        referrals=[ReferralResponse.model_validate(r) for r in rows],
    )


@router.post("/me/referral-code", response_model=ReferralCodeResponse)
async def set_referral_code(
    body: ReferralCodeRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> ReferralCodeResponse:
    """Set the caller's referral code. Allowed once."""
    code = await referrals.set_referral_code(db, identity.user_id, body.referral_code)
    return ReferralCodeResponse(referral_code=code)
