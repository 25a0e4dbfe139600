"""User feedback and its one-time review by an admin."""

from __future__ import annotations

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.db.models import Feedback, User
from predictearn.errors import ConflictError, NotFoundError, UserNotFound, ValidationError
from predictearn.ledger import service as ledger

logger = structlog.get_logger()

FEEDBACK_MAX_LENGTH = 5000


async def submit_feedback(db: AsyncSession, user_id: int, text: str) -> Feedback:
    text = text.strip()
    if not text:
        raise ValidationError("Feedback text is required")
    if len(text) > FEEDBACK_MAX_LENGTH:
        raise ValidationError("Feedback text is too long")
    if await db.get(User, user_id) is None:
        raise UserNotFound

    feedback = Feedback(user_id=user_id, feedback_text=text, status="pending", awarded_points=0)
    db.add(feedback)
    await db.commit()
    await db.refresh(feedback)
    logger.info("feedback_submitted", feedback_id=feedback.id, user_id=user_id)
    return feedback


async def list_feedback(db: AsyncSession, user_id: int | None = None, status: str | None = None) -> list[Feedback]:
    stmt = select(Feedback).order_by(Feedback.created_at.desc(), Feedback.id.desc())
    if user_id is not None:
        stmt = stmt.where(Feedback.user_id == user_id)
    if status is not None:
        stmt = stmt.where(Feedback.status == status)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _claim(db: AsyncSession, feedback_id: int, status: str, points: int) -> Feedback:
    """Move a pending feedback row to ``status``. Exactly one reviewer wins."""
    feedback = await db.get(Feedback, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found")

    result = await db.execute(
        update(Feedback)
        .where(Feedback.id == feedback_id, Feedback.status == "pending")
        .values(status=status, awarded_points=points)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise ConflictError("Feedback already processed")
    return feedback


async def approve_feedback(db: AsyncSession, admin_id: int, feedback_id: int, points: int) -> Feedback:
    """Approve and pay ``points`` through the ledger. Commits."""
    if points <= 0:
        raise ValidationError("Points must be positive")

    feedback = await _claim(db, feedback_id, "approved", points)
    await ledger.record(
        db, feedback.user_id, points, "feedback",
        admin_id=admin_id,
        notes=f"Feedback {feedback_id} approved",
    )
    await db.commit()
    await db.refresh(feedback)
    logger.info("feedback_approved", feedback_id=feedback_id, admin_id=admin_id, points=points)
    return feedback


async def reject_feedback(db: AsyncSession, admin_id: int, feedback_id: int) -> Feedback:
    feedback = await _claim(db, feedback_id, "rejected", 0)
    await db.commit()
    await db.refresh(feedback)
    logger.info("feedback_rejected", feedback_id=feedback_id, admin_id=admin_id)
    return feedback
