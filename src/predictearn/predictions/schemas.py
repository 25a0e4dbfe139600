"""Request/response schemas for prediction endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PredictionCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=256)
    description: str = Field(..., min_length=1)
    correct_answer: str = Field(..., min_length=1, max_length=1000)
    points_cost: int = Field(..., ge=0)
    reward_points: int | None = None
    image_url: str | None = None


class PredictionUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=256)
    description: str | None = Field(None, min_length=1)
    correct_answer: str | None = Field(None, min_length=1, max_length=1000)
    points_cost: int | None = Field(None, ge=0)
    reward_points: int | None = None
    image_url: str | None = None


class PredictionStatusRequest(BaseModel):
    status: str = Field(..., pattern="^(active|finished)$")


class PredictionResponse(BaseModel):
    """``answer`` is plaintext only for the author; everyone else gets a placeholder."""

    id: int
    title: str
    description: str
    image_url: str | None
    points_cost: int
    reward_points: int
    status: str
    author_id: int
    author_name: str | None
    winner_id: int | None
    winner_name: str | None
    answer: str
    correct_answer: str
    is_author: bool
    created_at: datetime


class PredictionStats(BaseModel):
    total_participants: int = 0
    total_points: int = 0
    average_points: int = 0
    correct_predictions: int = 0


class AdminPredictionResponse(PredictionResponse):
    stats: PredictionStats


class PredictionListResponse(BaseModel):
    predictions: list[PredictionResponse]
    cached: bool


class AttemptResponse(BaseModel):
    id: int
    user_id: int
    user_name: str | None
    guess: str | None
    is_correct: bool
    points_spent: int
    created_at: datetime


class PredictionDetailResponse(BaseModel):
    prediction: PredictionResponse
    attempts: list[AttemptResponse]
    page: int
    limit: int
    total_pages: int


class GuessRequest(BaseModel):
    guess: str = Field(..., min_length=1, max_length=1000)


class GuessResponse(BaseModel):
    is_correct: bool
    points_spent: int
    reward_points: int
    balance: int
