"""Prediction contests: authoring, listing and guess resolution.

Resolution is "first correct guess wins". The winner is decided by one
conditional UPDATE (``status`` active -> finished, guarded on ``status =
'active'``), so two correct guesses racing on the same prediction can never
both win: the loser's UPDATE matches no row and its whole unit of work,
including its debit, is rolled back.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity
from predictearn.config import get_settings
from predictearn.db.models import Prediction, UserPredictionAttempt
from predictearn.errors import (
    AlreadyWon,
    ConflictError,
    ForbiddenError,
    PredictionNotActive,
    PredictionNotFound,
    ValidationError,
)
from predictearn.ledger import service as ledger
from predictearn.predictions.access import PredictionAccess, access_for, present_prediction
from predictearn.predictions.cache import PredictionListCache
from predictearn.predictions.secret_store import SecretStore

logger = structlog.get_logger()

PREDICTION_STATUSES = ("active", "finished")


@dataclass(frozen=True)
class GuessResult:
    is_correct: bool
    points_spent: int
    reward_points: int
    balance: int


def default_reward(points_cost: int, reward_points: int | None = None) -> int:
    """Explicit positive reward, else ``round(cost * multiplier)`` rounding halves up."""
    if reward_points is not None and reward_points > 0:
        return reward_points
    return math.floor(points_cost * get_settings().prediction_reward_multiplier + 0.5)


def guesses_match(guess: str, answer: str) -> bool:
    return guess.strip().lower() == answer.strip().lower()


# ---------------------------------------------------------------------------
# Authoring
# ---------------------------------------------------------------------------


async def create_prediction(
    db: AsyncSession,
    store: SecretStore,
    cache: PredictionListCache,
    author: Identity,
    title: str,
    description: str,
    correct_answer: str,
    points_cost: int,
    reward_points: int | None = None,
    image_url: str | None = None,
) -> Prediction:
    if not correct_answer.strip():
        raise ValidationError("Correct answer is required")
    if points_cost < 0:
        raise ValidationError("Points cost cannot be negative")

    prediction = Prediction(
        title=title,
        description=description,
        image_url=image_url,
        answer=store.encrypt(correct_answer),
        points_cost=points_cost,
        reward_points=default_reward(points_cost, reward_points),
        status="active",
        author_id=author.user_id,
    )
    db.add(prediction)
    await db.commit()
    await db.refresh(prediction)
    cache.invalidate()
    logger.info("prediction_created", prediction_id=prediction.id, author_id=author.user_id)
    return prediction


async def update_prediction(
    db: AsyncSession,
    store: SecretStore,
    cache: PredictionListCache,
    access: PredictionAccess,
    changes: dict[str, Any],
) -> Prediction:
    """Author edit. Only while the prediction is still active; the answer is re-encrypted."""
    prediction = access.prediction
    if prediction.status != "active":
        raise PredictionNotActive("Finished predictions cannot be edited")

    for field in ("title", "description", "image_url"):
        if changes.get(field) is not None:
            setattr(prediction, field, changes[field])
    if changes.get("correct_answer"):
        prediction.answer = store.encrypt(changes["correct_answer"])
    if changes.get("points_cost") is not None:
        if changes["points_cost"] < 0:
            raise ValidationError("Points cost cannot be negative")
        prediction.points_cost = changes["points_cost"]
    if "points_cost" in changes or "reward_points" in changes:
        prediction.reward_points = default_reward(prediction.points_cost, changes.get("reward_points"))

    await db.commit()
    await db.refresh(prediction)
    cache.invalidate()
    return prediction


async def delete_prediction(db: AsyncSession, cache: PredictionListCache, access: PredictionAccess) -> None:
    prediction_id = access.prediction.id
    await db.execute(delete(UserPredictionAttempt).where(UserPredictionAttempt.prediction_id == prediction_id))
    await db.execute(delete(Prediction).where(Prediction.id == prediction_id))
    await db.commit()
    cache.invalidate()
    logger.info("prediction_deleted", prediction_id=prediction_id)


async def close_prediction(
    db: AsyncSession,
    cache: PredictionListCache,
    prediction_id: int,
    identity: Identity,
    status: str,
) -> Prediction:
    """Staff status change. Only admins may close; a finished prediction never reopens."""
    if status not in PREDICTION_STATUSES:
        raise ValidationError(f"Status must be one of {', '.join(PREDICTION_STATUSES)}")
    if status == "finished" and not identity.is_admin:
        raise ForbiddenError("Only admin can close predictions")

    prediction = await db.get(Prediction, prediction_id)
    if prediction is None:
        raise PredictionNotFound
    if prediction.status == status:
        return prediction
    if prediction.status == "finished":
        raise ConflictError("Finished predictions cannot be reopened")

    result = await db.execute(
        update(Prediction)
        .where(Prediction.id == prediction_id, Prediction.status == "active")
        .values(status="finished")
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise PredictionNotActive
    await db.commit()
    cache.invalidate()
    await db.refresh(prediction)
    logger.info("prediction_closed", prediction_id=prediction_id, admin_id=identity.user_id)
    return prediction


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


async def list_public_predictions(
    db: AsyncSession,
    store: SecretStore,
    cache: PredictionListCache,
    identity: Identity | None = None,
) -> tuple[list[dict[str, Any]], bool]:
    """Active and finished predictions, newest first, answers redacted.

    The redacted snapshot is shared through the cache; an authenticated author
    gets their own answers revealed on top of it. Returns ``(items, cache_hit)``.
    """
    items, hit = cache.get()
    if not hit:
        generation = cache.generation
        result = await db.execute(
            select(Prediction)
            .where(Prediction.status.in_(PREDICTION_STATUSES))
            .order_by(Prediction.created_at.desc(), Prediction.id.desc())
            .execution_options(populate_existing=True)
        )
        items = [present_prediction(access_for(p, None), store) for p in result.unique().scalars()]
        cache.set_if_generation(items, generation)

    if identity is None:
        return items, hit

    own_ids = [item["id"] for item in items if item["author_id"] == identity.user_id]
    if not own_ids:
        return items, hit

    rows = await db.execute(select(Prediction.id, Prediction.answer).where(Prediction.id.in_(own_ids)))
    revealed = {pid: store.reveal(answer) for pid, answer in rows.all()}
    personalized = []
    for item in items:
        if item["id"] in revealed:
            item = {**item, "answer": revealed[item["id"]], "correct_answer": revealed[item["id"]], "is_author": True}
        personalized.append(item)
    return personalized, hit


async def list_attempts(
    db: AsyncSession,
    prediction_id: int,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[UserPredictionAttempt], int]:
    """One page of attempts (newest first) and the total page count."""
    total = await db.scalar(
        select(func.count()).select_from(UserPredictionAttempt).where(
            UserPredictionAttempt.prediction_id == prediction_id
        )
    ) or 0
    result = await db.execute(
        select(UserPredictionAttempt)
        .where(UserPredictionAttempt.prediction_id == prediction_id)
        .order_by(UserPredictionAttempt.created_at.desc(), UserPredictionAttempt.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.unique().scalars().all()), math.ceil(total / limit) if limit else 0


async def prediction_stats(db: AsyncSession, prediction_ids: list[int]) -> dict[int, dict[str, int]]:
    """Participants, points spent, average spend and correct count per prediction."""
    if not prediction_ids:
        return {}
    rows = await db.execute(
        select(
            UserPredictionAttempt.prediction_id,
            func.count(UserPredictionAttempt.id),
            func.coalesce(func.sum(UserPredictionAttempt.points_spent), 0),
            func.coalesce(func.sum(case((UserPredictionAttempt.is_correct.is_(True), 1), else_=0)), 0),
        )
        .where(UserPredictionAttempt.prediction_id.in_(prediction_ids))
        .group_by(UserPredictionAttempt.prediction_id)
    )
    stats: dict[int, dict[str, int]] = {
        pid: {"total_participants": 0, "total_points": 0, "average_points": 0, "correct_predictions": 0}
        for pid in prediction_ids
    }
    for pid, participants, points, correct in rows.all():
        stats[pid] = {
            "total_participants": participants,
            "total_points": int(points),
            "average_points": round(int(points) / participants) if participants else 0,
            "correct_predictions": int(correct),
        }
    return stats


async def list_all_predictions(db: AsyncSession) -> list[Prediction]:
    result = await db.execute(
        select(Prediction)
        .order_by(Prediction.created_at.desc(), Prediction.id.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.unique().scalars().all())


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


async def claim_win(db: AsyncSession, prediction_id: int, user_id: int) -> bool:
    """Atomically finish an active prediction with ``user_id`` as winner.

    Returns False if the prediction was no longer active. Does not commit.
    """
    result = await db.execute(
        update(Prediction)
        .where(Prediction.id == prediction_id, Prediction.status == "active")
        .values(status="finished", winner_id=user_id)
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)


async def submit_guess(
    db: AsyncSession,
    store: SecretStore,
    cache: PredictionListCache,
    prediction_id: int,
    user_id: int,
    guess: str,
) -> GuessResult:
    """Pay for a guess and resolve it.

    The cost is charged whether or not the guess is right. A right guess
    finishes the prediction, records the caller as winner and pays the reward.

    Raises:
        PredictionNotFound: no such prediction.
        PredictionNotActive: already finished (including lost races).
        AlreadyWon: the caller already holds a correct attempt.
        InsufficientBalanceError: balance below the cost; nothing is charged.
        DecryptionError: stored answer is corrupt.
    """
    prediction = await db.get(Prediction, prediction_id, populate_existing=True)
    if prediction is None:
        raise PredictionNotFound
    if prediction.status != "active":
        raise PredictionNotActive

    won_before = await db.scalar(
        select(UserPredictionAttempt.id).where(
            UserPredictionAttempt.prediction_id == prediction_id,
            UserPredictionAttempt.user_id == user_id,
            UserPredictionAttempt.is_correct.is_(True),
        ).limit(1)
    )
    if won_before is not None:
        raise AlreadyWon

    is_correct = guesses_match(guess, store.reveal(prediction.answer))
    cost = prediction.points_cost
    reward = prediction.reward_points or default_reward(cost)

    if cost:
        await ledger.record(
            db, user_id, -cost, "prediction-cost",
            notes=f"Guess on prediction {prediction_id}",
            require_balance=True,
        )

    if is_correct:
        if not await claim_win(db, prediction_id, user_id):
            await db.rollback()
            raise PredictionNotActive
        await ledger.record(db, user_id, reward, "prediction-win", notes=f"Won prediction {prediction_id}")

    db.add(UserPredictionAttempt(
        user_id=user_id,
        prediction_id=prediction_id,
        guess=guess,
        is_correct=is_correct,
        points_spent=cost,
    ))
    await db.commit()

    if is_correct:
        cache.invalidate()
        logger.info("prediction_resolved", prediction_id=prediction_id, winner_id=user_id, reward=reward)
    else:
        logger.info("prediction_guess_wrong", prediction_id=prediction_id, user_id=user_id)

    user = await ledger.get_balance(db, user_id)
    return GuessResult(
        is_correct=is_correct,
        points_spent=cost,
        reward_points=reward if is_correct else 0,
        balance=user.balance,
    )
