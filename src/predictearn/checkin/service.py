"""Daily check-in: question serving, skips, answer submission and streak bonus."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.checkin.streak import effective_streak, next_streak
from predictearn.config import get_settings
from predictearn.db.dialect import dialect_insert
from predictearn.db.models import CheckInRecord, Question, User, UserAnsweredQuestion
from predictearn.errors import AlreadyCheckedIn, QuestionNotFound, SkipLimitReached, UserNotFound
from predictearn.ledger import service as ledger
from predictearn.referrals.service import complete_pending_referral
from predictearn.system_settings.service import get_point_settings

logger = structlog.get_logger()


@dataclass(frozen=True)
class CheckInStatus:
    has_checked_in: bool
    is_correct: bool | None
    points_earned: int
    streak: int
    skips_remaining: int


@dataclass(frozen=True)
class CheckInResult:
    is_correct: bool
    points_earned: int = 0
    bonus_points: int = 0
    streak: int = 0
    correct_answer: str | None = None


def answers_match(given: str, expected: str) -> bool:
    """Case-insensitive, whitespace-trimmed equality."""
    return given.strip().lower() == expected.strip().lower()


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise UserNotFound
    return user


async def _todays_check_in(db: AsyncSession, user_id: int, today: date) -> CheckInRecord | None:
    result = await db.execute(
        select(CheckInRecord).where(CheckInRecord.user_id == user_id, CheckInRecord.check_in_date == today)
    )
    return result.scalar_one_or_none()


def _max_skips(user: User) -> int:
    return user.max_skips if user.max_skips is not None else get_settings().daily_max_skips


def _skips_used(user: User, today: date) -> int:
    return user.skip_count if user.skip_date == today else 0


async def _mark_answered(db: AsyncSession, user_id: int, question_id: int) -> None:
    stmt = (
        dialect_insert(db, UserAnsweredQuestion)
        .values(user_id=user_id, question_id=question_id)
        .on_conflict_do_nothing(index_elements=["user_id", "question_id"])
    )
    await db.execute(stmt)


async def get_status(db: AsyncSession, user_id: int, today: date) -> CheckInStatus:
    user = await _get_user(db, user_id)
    record = await _todays_check_in(db, user_id, today)
    return CheckInStatus(
        has_checked_in=record is not None,
        is_correct=record.is_correct if record else None,
        points_earned=record.points_earned if record else 0,
        streak=effective_streak(user.last_check_in_date, user.consecutive_check_ins, today),
        skips_remaining=max(0, _max_skips(user) - _skips_used(user, today)),
    )


async def _pick_question(db: AsyncSession, user_id: int) -> Question | None:
    answered = select(UserAnsweredQuestion.question_id).where(UserAnsweredQuestion.user_id == user_id)
    base = select(Question).where(Question.status == "active").order_by(
        Question.display_count.asc(), Question.id.asc()
    )

    for stmt in (
        base.where(Question.is_priority.is_(True), Question.id.not_in(answered)),
        base.where(Question.id.not_in(answered)),
    ):
        question = (await db.execute(stmt.limit(1))).scalar_one_or_none()
        if question is not None:
            return question

    # Pool exhausted: recycle
    await db.execute(delete(UserAnsweredQuestion).where(UserAnsweredQuestion.user_id == user_id))
    stmt = base.order_by(None).order_by(
        Question.is_priority.desc(), Question.display_count.asc(), Question.id.asc()
    )
    question = (await db.execute(stmt.limit(1))).scalar_one_or_none()
    if question is not None:
        logger.info("question_pool_recycled", user_id=user_id)
    return question


async def get_question_for_user(db: AsyncSession, user_id: int, today: date) -> Question:
    """Serve the next question for today's check-in and bump its display count.

    Raises:
        AlreadyCheckedIn: the user already completed today's check-in.
        QuestionNotFound: no active questions exist.
    """
    await _get_user(db, user_id)
    if await _todays_check_in(db, user_id, today) is not None:
        raise AlreadyCheckedIn

    question = await _pick_question(db, user_id)
    if question is None:
        raise QuestionNotFound("No question available")

    await db.execute(
        update(Question)
        .where(Question.id == question.id)
        .values(display_count=Question.display_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return question


async def get_public_question(db: AsyncSession) -> Question:
    """Random active question for guests."""
    ids = (await db.execute(select(Question.id).where(Question.status == "active"))).scalars().all()
    if not ids:
        raise QuestionNotFound("No active questions available")
    question = await db.get(Question, random.choice(ids))  # noqa: S311
    if question is None:
        raise QuestionNotFound("No active questions available")
    return question


async def skip_question(db: AsyncSession, user_id: int, question_id: int, today: date) -> int:
    """Consume one of today's skips and retire the question from the user's pool.

    Returns skips remaining today.

    Raises:
        AlreadyCheckedIn: nothing left to skip today.
        SkipLimitReached: all of today's skips are used.
        QuestionNotFound: unknown question.
    """
    user = await _get_user(db, user_id)
    if await _todays_check_in(db, user_id, today) is not None:
        raise AlreadyCheckedIn
    if await db.get(Question, question_id) is None:
        raise QuestionNotFound

    max_skips = _max_skips(user)
    if max_skips <= 0:
        raise SkipLimitReached

    # First skip of the day resets the counter; later skips are guarded by the limit.
    first_today = await db.execute(
        update(User)
        .where(User.id == user_id, (User.skip_date.is_(None)) | (User.skip_date != today))
        .values(skip_count=1, skip_date=today)
        .execution_options(synchronize_session=False)
    )
    if not first_today.rowcount:
        more = await db.execute(
            update(User)
            .where(User.id == user_id, User.skip_date == today, User.skip_count < max_skips)
            .values(skip_count=User.skip_count + 1)
            .execution_options(synchronize_session=False)
        )
        if not more.rowcount:
            raise SkipLimitReached

    await _mark_answered(db, user_id, question_id)
    await db.commit()

    user = await _get_user(db, user_id)
    remaining = max(0, max_skips - _skips_used(user, today))
    logger.info("checkin_question_skipped", user_id=user_id, question_id=question_id, skips_remaining=remaining)
    return remaining


async def submit_answer(
    db: AsyncSession,
    user_id: int,
    question_id: int,
    answer: str,
    today: date,
) -> CheckInResult:
    """Check an answer; a correct one records today's check-in and pays out.

    An incorrect answer changes nothing and the user may try again.

    Raises:
        AlreadyCheckedIn: today's check-in already exists (including a concurrent one).
        QuestionNotFound: unknown or inactive question.
    """
    user = await _get_user(db, user_id)
    if await _todays_check_in(db, user_id, today) is not None:
        raise AlreadyCheckedIn

    question = await db.get(Question, question_id)
    if question is None or question.status != "active":
        raise QuestionNotFound

    if not answers_match(answer, question.answer):
        return CheckInResult(is_correct=False)

    point_settings = await get_point_settings(db)
    transition = next_streak(
        user.last_check_in_date,
        user.consecutive_check_ins,
        today,
        bonus_day=get_settings().streak_bonus_day,
    )
    base_points = question.points
    bonus_points = point_settings.streak_bonus_points if transition.bonus_awarded else 0

    inserted = await db.execute(
        dialect_insert(db, CheckInRecord)
        .values(
            user_id=user_id,
            question_id=question_id,
            answer=answer,
            is_correct=True,
            points_earned=base_points + bonus_points,
            check_in_date=today,
        )
        .on_conflict_do_nothing(index_elements=["user_id", "check_in_date"])
        .returning(CheckInRecord.id)
    )
    if inserted.scalar_one_or_none() is None:
        await db.rollback()
        raise AlreadyCheckedIn

    await ledger.record(db, user_id, base_points, "check-in", notes=f"Daily check-in {today.isoformat()}")
    if bonus_points:
        await ledger.record(
            db, user_id, bonus_points, "streak-bonus",
            notes=f"{transition.display_streak}-day check-in streak",
        )

    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(consecutive_check_ins=transition.stored_streak, last_check_in_date=today)
        .execution_options(synchronize_session=False)
    )
    await _mark_answered(db, user_id, question_id)
    await complete_pending_referral(db, user_id)
    await db.commit()

    logger.info(
        "checkin_recorded",
        user_id=user_id,
        question_id=question_id,
        points=base_points + bonus_points,
        streak=transition.display_streak,
        bonus=transition.bonus_awarded,
    )
    return CheckInResult(
        is_correct=True,
        points_earned=base_points + bonus_points,
        bonus_points=bonus_points,
        streak=transition.display_streak,
        correct_answer=question.answer,
    )
