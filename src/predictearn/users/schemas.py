"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    referral_code: str | None = Field(None, max_length=64)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class UserResponse(BaseModel):
    """Own profile with the balance split by partition."""

    id: int
    name: str
    email: str
    role: str
    avatar_url: str | None
    is_email_verified: bool
    points: int
    order_points: int
    balance: int
    total_order_value: Decimal
    consecutive_check_ins: int
    referral_code: str | None
    total_successful_referrals: int
    created_at: datetime

    model_config = {"from_attributes": True}
