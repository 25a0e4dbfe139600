"""Request/response schemas for check-in and question bank endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CheckInStatusResponse(BaseModel):
    has_checked_in: bool
    is_correct: bool | None
    points_earned: int
    streak: int
    skips_remaining: int


class QuestionResponse(BaseModel):
    """A question as served to players. Never carries the answer."""

    id: int
    question_text: str
    image_url: str | None
    points: int

    model_config = {"from_attributes": True}


class SkipRequest(BaseModel):
    question_id: int


class SkipResponse(BaseModel):
    skips_remaining: int


class SubmitAnswerRequest(BaseModel):
    question_id: int
    answer: str = Field(..., min_length=1, max_length=256)


class SubmitAnswerResponse(BaseModel):
    """``is_correct=false`` means nothing was recorded; the user may try again."""

    is_correct: bool
    points_earned: int
    bonus_points: int
    streak: int
    correct_answer: str | None


# ---------------------------------------------------------------------------
# Question bank (staff)
# ---------------------------------------------------------------------------


class QuestionCreateRequest(BaseModel):
    question_text: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1, max_length=256)
    points: int | None = Field(None, gt=0)
    is_priority: bool = False
    image_url: str | None = None


class QuestionUpdateRequest(BaseModel):
    question_text: str | None = Field(None, min_length=1)
    answer: str | None = Field(None, min_length=1, max_length=256)
    points: int | None = Field(None, gt=0)
    is_priority: bool | None = None
    status: str | None = Field(None, pattern="^(active|inactive)$")
    image_url: str | None = None


class AdminQuestionResponse(BaseModel):
    id: int
    question_text: str
    answer: str
    image_url: str | None
    points: int
    is_priority: bool
    status: str
    display_count: int
    created_at: datetime

    model_config = {"from_attributes": True}
