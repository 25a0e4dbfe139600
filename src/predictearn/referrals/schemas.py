"""Request/response schemas for referral endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ReferralCodeRequest(BaseModel):
    referral_code: str = Field(..., min_length=4, max_length=64)


class ReferralCodeResponse(BaseModel):
    referral_code: str


class ReferredUser(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}


class ReferralResponse(BaseModel):
    id: int
    status: str
    created_at: datetime
    completed_at: datetime | None
    referred_user: ReferredUser

    model_config = {"from_attributes": True}


class ReferralSummary(BaseModel):
    referral_code: str | None
    total_successful_referrals: int
    referrals: list[ReferralResponse]
