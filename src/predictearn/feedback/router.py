"""Feedback router: /api/v1/feedback/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity, get_current_identity, require_admin
from predictearn.database import get_session
from predictearn.feedback import service
from predictearn.feedback.schemas import FeedbackApproveRequest, FeedbackCreateRequest, FeedbackResponse

router = APIRouter(prefix="/api/v1/feedback", tags=["Feedback"])


@router.post("", response_model=FeedbackResponse, status_code=201)
async def submit(
    body: FeedbackCreateRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> FeedbackResponse:
    feedback = await service.submit_feedback(db, identity.user_id, body.feedback_text)
    return FeedbackResponse.model_validate(feedback)


@router.get("/me", response_model=list[FeedbackResponse])
async def my_feedback(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> list[FeedbackResponse]:
    rows = await service.list_feedback(db, user_id=identity.user_id)
    return [FeedbackResponse.model_validate(f) for f in rows]


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.get("/admin", response_model=list[FeedbackResponse])
async def all_feedback(
    status: str | None = Query(None, pattern="^(pending|approved|rejected)$"),
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[FeedbackResponse]:
    rows = await service.list_feedback(db, status=status)
    return [FeedbackResponse.model_validate(f) for f in rows]


@router.post("/admin/{feedback_id}/approve", response_model=FeedbackResponse)
async def approve(
    feedback_id: int,
    body: FeedbackApproveRequest,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> FeedbackResponse:
    """Approve once and award points through the ledger."""
    feedback = await service.approve_feedback(db, admin.user_id, feedback_id, body.points)
    return FeedbackResponse.model_validate(feedback)


@router.post("/admin/{feedback_id}/reject", response_model=FeedbackResponse)
async def reject(
    feedback_id: int,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> FeedbackResponse:
    feedback = await service.reject_feedback(db, admin.user_id, feedback_id)
    return FeedbackResponse.model_validate(feedback)
