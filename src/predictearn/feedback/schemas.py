"""Request/response schemas for feedback endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class FeedbackCreateRequest(BaseModel):
    feedback_text: str = Field(..., min_length=1, max_length=5000)


class FeedbackApproveRequest(BaseModel):
    points: int = Field(..., gt=0)


class FeedbackResponse(BaseModel):
    id: int
    user_id: int
    feedback_text: str
    status: str
    awarded_points: int
    created_at: datetime

    model_config = {"from_attributes": True}
