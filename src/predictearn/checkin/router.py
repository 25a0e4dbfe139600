"""Check-in router: /api/v1/checkin/* and the staff question bank."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity, get_current_identity, require_staff
from predictearn.checkin import questions, service
from predictearn.checkin.schemas import (
    AdminQuestionResponse,
    CheckInStatusResponse,
    QuestionCreateRequest,
    QuestionResponse,
    QuestionUpdateRequest,
    SkipRequest,
    SkipResponse,
    SubmitAnswerRequest,
    SubmitAnswerResponse,
)
from predictearn.checkin.streak import today_utc
from predictearn.database import get_session

router = APIRouter(prefix="/api/v1/checkin", tags=["Check-in"])
admin_router = APIRouter(prefix="/api/v1/admin/questions", tags=["Questions"])


@router.get("/status", response_model=CheckInStatusResponse)
async def status(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> CheckInStatusResponse:
    result = await service.get_status(db, identity.user_id, today_utc())
    return CheckInStatusResponse(
        has_checked_in=result.has_checked_in,
        is_correct=result.is_correct,
        points_earned=result.points_earned,
        streak=result.streak,
        skips_remaining=result.skips_remaining,
    )


@router.get("/question", response_model=QuestionResponse)
async def question(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> QuestionResponse:
    """Today's question for the caller."""
    q = await service.get_question_for_user(db, identity.user_id, today_utc())
    return QuestionResponse.model_validate(q)


@router.get("/question/public", response_model=QuestionResponse)
async def public_question(db: AsyncSession = Depends(get_session)) -> QuestionResponse:
    """A random active question for guests."""
    return QuestionResponse.model_validate(await service.get_public_question(db))


@router.post("/skip", response_model=SkipResponse)
async def skip(
    body: SkipRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> SkipResponse:
    remaining = await service.skip_question(db, identity.user_id, body.question_id, today_utc())
    return SkipResponse(skips_remaining=remaining)


@router.post("/submit", response_model=SubmitAnswerResponse)
async def submit(
    body: SubmitAnswerRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
) -> SubmitAnswerResponse:
    result = await service.submit_answer(db, identity.user_id, body.question_id, body.answer, today_utc())
    return SubmitAnswerResponse(
        is_correct=result.is_correct,
        points_earned=result.points_earned,
        bonus_points=result.bonus_points,
        streak=result.streak,
        correct_answer=result.correct_answer,
    )


# ---------------------------------------------------------------------------
# Question bank
# ---------------------------------------------------------------------------


@admin_router.get("", response_model=list[AdminQuestionResponse])
async def list_questions(
    _staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
) -> list[AdminQuestionResponse]:
    return [AdminQuestionResponse.model_validate(q) for q in await questions.list_questions(db)]


@admin_router.post("", response_model=AdminQuestionResponse, status_code=201)
async def create_question(
    body: QuestionCreateRequest,
    _staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
) -> AdminQuestionResponse:
    q = await questions.create_question(
        db,
        body.question_text,
        body.answer,
        points=body.points,
        is_priority=body.is_priority,
        image_url=body.image_url,
    )
    return AdminQuestionResponse.model_validate(q)


@admin_router.patch("/{question_id}", response_model=AdminQuestionResponse)
async def update_question(
    question_id: int,
    body: QuestionUpdateRequest,
    _staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
) -> AdminQuestionResponse:
    q = await questions.update_question(db, question_id, body.model_dump(exclude_unset=True))
    return AdminQuestionResponse.model_validate(q)


@admin_router.post("/{question_id}/toggle-priority", response_model=AdminQuestionResponse)
async def toggle_priority(
    question_id: int,
    _staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
) -> AdminQuestionResponse:
    return AdminQuestionResponse.model_validate(await questions.toggle_priority(db, question_id))


@admin_router.post("/{question_id}/toggle-status", response_model=AdminQuestionResponse)
async def toggle_status(
    question_id: int,
    _staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
) -> AdminQuestionResponse:
    return AdminQuestionResponse.model_validate(await questions.toggle_status(db, question_id))
