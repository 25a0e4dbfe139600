"""Prediction routers: public /api/v1/predictions/* and staff /api/v1/admin/predictions/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity, get_current_identity, get_optional_identity, require_staff
from predictearn.database import get_session
from predictearn.db.models import UserPredictionAttempt
from predictearn.predictions import service
from predictearn.predictions.access import (
    PredictionAccess,
    access_for,
    present_prediction,
    resolve_author_access,
    resolve_view_access,
)
from predictearn.predictions.cache import PredictionListCache, get_prediction_cache
from predictearn.predictions.schemas import (
    AdminPredictionResponse,
    AttemptResponse,
    GuessRequest,
    GuessResponse,
    PredictionCreateRequest,
    PredictionDetailResponse,
    PredictionListResponse,
    PredictionResponse,
    PredictionStats,
    PredictionStatusRequest,
    PredictionUpdateRequest,
)
from predictearn.predictions.secret_store import SecretStore, get_secret_store

router = APIRouter(prefix="/api/v1/predictions", tags=["Predictions"])
admin_router = APIRouter(prefix="/api/v1/admin/predictions", tags=["Predictions"])


def _attempt_response(
    attempt: UserPredictionAttempt,
    access: PredictionAccess,
    identity: Identity | None,
) -> AttemptResponse:
    # Guesses are visible to the author and to whoever made them; a winning guess is the answer.
    own = identity is not None and attempt.user_id == identity.user_id
    return AttemptResponse(
        id=attempt.id,
        user_id=attempt.user_id,
        user_name=attempt.user.name if attempt.user else None,
        guess=attempt.guess if access.can_view_answer or own else None,
        is_correct=attempt.is_correct,
        points_spent=attempt.points_spent,
        created_at=attempt.created_at,
    )


async def _detail(
    db: AsyncSession,
    store: SecretStore,
    access: PredictionAccess,
    identity: Identity | None,
    page: int,
    limit: int,
) -> PredictionDetailResponse:
    attempts, total_pages = await service.list_attempts(db, access.prediction.id, page=page, limit=limit)
    return PredictionDetailResponse(
        prediction=PredictionResponse(**present_prediction(access, store)),
        attempts=[_attempt_response(a, access, identity) for a in attempts],
        page=page,
        limit=limit,
        total_pages=total_pages,
    )


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------


@router.get("", response_model=PredictionListResponse)
async def list_predictions(
    response: Response,
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_session),
    store: SecretStore = Depends(get_secret_store),
    cache: PredictionListCache = Depends(get_prediction_cache),
) -> PredictionListResponse:
    """Active and finished predictions, newest first."""
    items, hit = await service.list_public_predictions(db, store, cache, identity)
    response.headers["X-Cache"] = "HIT" if hit else "MISS"
    return PredictionListResponse(predictions=[PredictionResponse(**item) for item in items], cached=hit)


@router.get("/{prediction_id}", response_model=PredictionDetailResponse)
async def get_prediction(
    prediction_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_session),
    store: SecretStore = Depends(get_secret_store),
) -> PredictionDetailResponse:
    access = await resolve_view_access(db, prediction_id, identity)
    return await _detail(db, store, access, identity, page, limit)


@router.post("/{prediction_id}/submit", response_model=GuessResponse)
async def submit_guess(
    prediction_id: int,
    body: GuessRequest,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_session),
    store: SecretStore = Depends(get_secret_store),
    cache: PredictionListCache = Depends(get_prediction_cache),
) -> GuessResponse:
    """Pay the cost and guess. The first correct guess wins."""
    result = await service.submit_guess(db, store, cache, prediction_id, identity.user_id, body.guess)
    return GuessResponse(
        is_correct=result.is_correct,
        points_spent=result.points_spent,
        reward_points=result.reward_points,
        balance=result.balance,
    )


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------


@admin_router.post("", response_model=PredictionResponse, status_code=201)
async def create_prediction(
    body: PredictionCreateRequest,
    staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    store: SecretStore = Depends(get_secret_store),
    cache: PredictionListCache = Depends(get_prediction_cache),
) -> PredictionResponse:
    prediction = await service.create_prediction(
        db, store, cache, staff,
        title=body.title,
        description=body.description,
        correct_answer=body.correct_answer,
        points_cost=body.points_cost,
        reward_points=body.reward_points,
        image_url=body.image_url,
    )
    access = await resolve_view_access(db, prediction.id, staff)
    return PredictionResponse(**present_prediction(access, store))


@admin_router.get("", response_model=list[AdminPredictionResponse])
async def list_all(
    staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    store: SecretStore = Depends(get_secret_store),
) -> list[AdminPredictionResponse]:
    """Every prediction with participation stats."""
    predictions = await service.list_all_predictions(db)
    stats = await service.prediction_stats(db, [p.id for p in predictions])
    return [
        AdminPredictionResponse(
            **present_prediction(access_for(p, staff), store),
            stats=PredictionStats(**stats.get(p.id, {})),
        )
        for p in predictions
    ]


@admin_router.get("/{prediction_id}", response_model=PredictionDetailResponse)
async def get_with_attempts(
    prediction_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
    staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    store: SecretStore = Depends(get_secret_store),
) -> PredictionDetailResponse:
    access = await resolve_view_access(db, prediction_id, staff)
    return await _detail(db, store, access, staff, page, limit)


@admin_router.patch("/{prediction_id}", response_model=PredictionResponse)
async def update_prediction(
    prediction_id: int,
    body: PredictionUpdateRequest,
    staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    store: SecretStore = Depends(get_secret_store),
    cache: PredictionListCache = Depends(get_prediction_cache),
) -> PredictionResponse:
    """Author-only edit while still active."""
    access = await resolve_author_access(db, prediction_id, staff)
    await service.update_prediction(db, store, cache, access, body.model_dump(exclude_unset=True))
    access = await resolve_view_access(db, prediction_id, staff)
    return PredictionResponse(**present_prediction(access, store))


@admin_router.delete("/{prediction_id}", status_code=204)
async def delete_prediction(
    prediction_id: int,
    staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    cache: PredictionListCache = Depends(get_prediction_cache),
) -> Response:
    access = await resolve_author_access(db, prediction_id, staff)
    await service.delete_prediction(db, cache, access)
    return Response(status_code=204)


@admin_router.patch("/{prediction_id}/status", response_model=PredictionResponse)
async def set_status(
    prediction_id: int,
    body: PredictionStatusRequest,
    staff: Identity = Depends(require_staff),
    db: AsyncSession = Depends(get_session),
    store: SecretStore = Depends(get_secret_store),
    cache: PredictionListCache = Depends(get_prediction_cache),
) -> PredictionResponse:
    """Close a prediction (admin only). Finished predictions never reopen."""
    await service.close_prediction(db, cache, prediction_id, staff, body.status)
    access = await resolve_view_access(db, prediction_id, staff)
    return PredictionResponse(**present_prediction(access, store))
