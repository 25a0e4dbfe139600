"""Question bank management (staff)."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.db.models import Question
from predictearn.errors import QuestionNotFound, ValidationError
from predictearn.system_settings.service import get_point_settings

logger = structlog.get_logger()

QUESTION_STATUSES = ("active", "inactive")
_EDITABLE_FIELDS = ("question_text", "answer", "image_url", "points", "is_priority", "status")


async def list_questions(db: AsyncSession) -> list[Question]:
    result = await db.execute(select(Question).order_by(Question.created_at.desc(), Question.id.desc()))
    return list(result.scalars().all())


async def create_question(
    db: AsyncSession,
    question_text: str,
    answer: str,
    points: int | None = None,
    is_priority: bool = False,
    image_url: str | None = None,
) -> Question:
    """Add a question. Without ``points`` it pays the current checkInPoints setting. Commits."""
    if not question_text.strip() or not answer.strip():
        raise ValidationError("Question text and answer are required")
    if points is None:
        points = (await get_point_settings(db)).checkin_points
    if points <= 0:
        raise ValidationError("Points must be positive")
    question = Question(
        question_text=question_text.strip(),
        answer=answer.strip(),
        points=points,
        is_priority=is_priority,
        image_url=image_url,
    )
    db.add(question)
    await db.commit()
    logger.info("question_created", question_id=question.id, priority=is_priority)
    return question


async def update_question(db: AsyncSession, question_id: int, changes: dict[str, Any]) -> Question:
    question = await db.get(Question, question_id)
    if question is None:
        raise QuestionNotFound
    if "status" in changes and changes["status"] not in QUESTION_STATUSES:
        raise ValidationError(f"Status must be one of {', '.join(QUESTION_STATUSES)}")
    if "points" in changes and changes["points"] is not None and changes["points"] <= 0:
        raise ValidationError("Points must be positive")

    for field in _EDITABLE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(question, field, changes[field])
    await db.commit()
    return question


async def toggle_priority(db: AsyncSession, question_id: int) -> Question:
    question = await db.get(Question, question_id)
    if question is None:
        raise QuestionNotFound
    question.is_priority = not question.is_priority
    await db.commit()
    return question


async def toggle_status(db: AsyncSession, question_id: int) -> Question:
    """Flip between active and inactive. Inactive questions are never served."""
    question = await db.get(Question, question_id)
    if question is None:
        raise QuestionNotFound
    question.status = "inactive" if question.status == "active" else "active"
    await db.commit()
    return question
