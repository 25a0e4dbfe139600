"""Who may see a prediction's answer.

Handlers never decide redaction themselves: they resolve a
``PredictionAccess`` once and pass it to ``present_prediction``. Only the
author gets the plaintext; every other caller, including admins who did not
write the prediction, sees ``REDACTED_ANSWER``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity
from predictearn.db.models import Prediction
from predictearn.errors import ForbiddenError, PredictionNotFound
from predictearn.predictions.secret_store import SecretStore

REDACTED_ANSWER = "***ENCRYPTED***"


@dataclass(frozen=True)
class PredictionAccess:
    prediction: Prediction
    can_view_answer: bool


def access_for(prediction: Prediction, identity: Identity | None) -> PredictionAccess:
    is_author = identity is not None and prediction.author_id == identity.user_id
    return PredictionAccess(prediction=prediction, can_view_answer=is_author)


async def resolve_view_access(
    db: AsyncSession,
    prediction_id: int,
    identity: Identity | None,
) -> PredictionAccess:
    """Load a prediction for reading. Raises PredictionNotFound."""
    prediction = await db.get(Prediction, prediction_id, populate_existing=True)
    if prediction is None:
        raise PredictionNotFound
    return access_for(prediction, identity)


async def resolve_author_access(
    db: AsyncSession,
    prediction_id: int,
    identity: Identity,
) -> PredictionAccess:
    """Load a prediction for modification by its author. Raises PredictionNotFound / ForbiddenError."""
    access = await resolve_view_access(db, prediction_id, identity)
    if not access.can_view_answer:
        raise ForbiddenError("Access denied. Only the prediction author can perform this action.")
    return access


def present_prediction(access: PredictionAccess, store: SecretStore) -> dict[str, Any]:
    """Serializable view of a prediction with the answer revealed or redacted."""
    p = access.prediction
    answer = store.reveal(p.answer) if access.can_view_answer else REDACTED_ANSWER
    return {
        "id": p.id,
        "title": p.title,
        "description": p.description,
        "image_url": p.image_url,
        "points_cost": p.points_cost,
        "reward_points": p.reward_points,
        "status": p.status,
        "author_id": p.author_id,
        "author_name": p.author.name if p.author else None,
        "winner_id": p.winner_id,
        "winner_name": p.winner.name if p.winner else None,
        "answer": answer,
        "correct_answer": answer,
        "is_author": access.can_view_answer,
        "created_at": p.created_at,
    }
