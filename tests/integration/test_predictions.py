"""Prediction resolution: single winner, charging, redaction and cache invalidation."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.dependencies import Identity
from predictearn.database import get_engine
from predictearn.db.models import Prediction, PointTransaction, User, UserPredictionAttempt
from predictearn.errors import (
    AlreadyWon,
    ForbiddenError,
    InsufficientBalanceError,
    PredictionNotActive,
    PredictionNotFound,
)
from predictearn.ledger import service as ledger
from predictearn.predictions import service
from predictearn.predictions.access import REDACTED_ANSWER, resolve_author_access
from predictearn.predictions.cache import get_prediction_cache
from predictearn.predictions.secret_store import get_secret_store


@pytest.fixture
def store():
    return get_secret_store()


@pytest.fixture
def cache():
    return get_prediction_cache()


@pytest.fixture
def make_prediction(db_session, store, cache):
    async def _make(author: User, answer: str = "Paris", cost: int = 10, reward: int | None = None) -> Prediction:
        return await service.create_prediction(
            db_session, store, cache, Identity(author.id, author.role),
            title="Capital?", description="Guess the capital", correct_answer=answer,
            points_cost=cost, reward_points=reward,
        )

    return _make


async def _points(db, user_id):
    user = await db.get(User, user_id, populate_existing=True)
    return user.balance


@pytest.mark.asyncio
async def test_answer_is_stored_encrypted(db_session, make_user, make_prediction, store):
    author = await make_user(role="staff")
    prediction = await make_prediction(author, answer="Paris", cost=10)
    assert prediction.answer != "Paris"
    assert store.decrypt(prediction.answer) == "Paris"
    assert prediction.reward_points == 15


@pytest.mark.asyncio
async def test_wrong_guess_charges_and_keeps_active(db_session, make_user, make_prediction, store, cache):
    author = await make_user(role="staff")
    player = await make_user(points=50)
    prediction = await make_prediction(author)

    result = await service.submit_guess(db_session, store, cache, prediction.id, player.id, "Rome")

    assert not result.is_correct
    assert result.balance == 40
    refreshed = await db_session.get(Prediction, prediction.id, populate_existing=True)
    assert refreshed.status == "active"
    assert refreshed.winner_id is None


@pytest.mark.asyncio
async def test_correct_guess_wins_once(db_session, make_user, make_prediction, store, cache):
    author = await make_user(role="staff")
    winner = await make_user(points=50)
    late = await make_user(points=50)
    prediction = await make_prediction(author, cost=10)

    result = await service.submit_guess(db_session, store, cache, prediction.id, winner.id, " paris ")
    assert result.is_correct
    assert result.reward_points == 15
    assert result.balance == 50 - 10 + 15

    refreshed = await db_session.get(Prediction, prediction.id, populate_existing=True)
    assert refreshed.status == "finished"
    assert refreshed.winner_id == winner.id

    with pytest.raises(PredictionNotActive):
        await service.submit_guess(db_session, store, cache, prediction.id, late.id, "Paris")
    assert await _points(db_session, late.id) == 50


@pytest.mark.asyncio
async def test_lost_race_rolls_back_the_debit(db_session, make_user, make_prediction, store, cache, monkeypatch):
    """The prediction passes the active check but another guess claims it first."""
    author = await make_user(role="staff")
    player = await make_user(points=50)
    prediction = await make_prediction(author)
    player_id, prediction_id = player.id, prediction.id

    async def lost_race(db, prediction_id, user_id):
        return False

    monkeypatch.setattr(service, "claim_win", lost_race)

    with pytest.raises(PredictionNotActive):
        await service.submit_guess(db_session, store, cache, prediction_id, player_id, "Paris")

    assert await _points(db_session, player_id) == 50
    attempts = await db_session.scalar(select(func.count()).select_from(UserPredictionAttempt))
    assert attempts == 0
    costs = await db_session.scalar(
        select(func.count()).select_from(PointTransaction).where(PointTransaction.user_id == player_id)
    )
    assert costs == 0


@pytest.mark.asyncio
async def test_claim_win_is_exactly_once(db_session, make_user, make_prediction):
    author = await make_user(role="staff")
    a = await make_user()
    b = await make_user()
    prediction = await make_prediction(author)

    assert await service.claim_win(db_session, prediction.id, a.id) is True
    assert await service.claim_win(db_session, prediction.id, b.id) is False
    await db_session.commit()

    refreshed = await db_session.get(Prediction, prediction.id, populate_existing=True)
    assert refreshed.winner_id == a.id


@pytest.mark.asyncio
async def test_two_sessions_racing_for_the_win(db_session, make_user, make_prediction, store, cache, monkeypatch):
    """Both guesses pass the active check; only the first to claim the row wins."""
    author = await make_user(role="staff")
    first = await make_user(points=50)
    second = await make_user(points=50)
    prediction = await make_prediction(author, cost=10)
    first_id, second_id, prediction_id = first.id, second.id, prediction.id

    claims = []
    real_claim_win = service.claim_win

    async def tracked_claim_win(db, prediction_id, user_id):
        won = await real_claim_win(db, prediction_id, user_id)
        claims.append((user_id, won))
        return won

    real_record = ledger.record
    interleaved = False

    async def record_after_rival(db, user_id, *args, **kwargs):
        # The first guess has read the prediction as active; the rival
        # finishes its whole guess in another session before it writes.
        nonlocal interleaved
        if not interleaved:
            interleaved = True
            async with AsyncSession(get_engine(), expire_on_commit=False) as rival:
                result = await service.submit_guess(rival, store, cache, prediction_id, second_id, "Paris")
            assert result.is_correct
        return await real_record(db, user_id, *args, **kwargs)

    monkeypatch.setattr(service, "claim_win", tracked_claim_win)
    monkeypatch.setattr(ledger, "record", record_after_rival)

    with pytest.raises(PredictionNotActive):
        await service.submit_guess(db_session, store, cache, prediction_id, first_id, "Paris")

    assert claims == [(second_id, True), (first_id, False)]
    refreshed = await db_session.get(Prediction, prediction_id, populate_existing=True)
    assert refreshed.status == "finished"
    assert refreshed.winner_id == second_id
    wins = (await db_session.scalars(
        select(PointTransaction.user_id).where(PointTransaction.reason == "prediction-win")
    )).all()
    assert wins == [second_id]
    assert await _points(db_session, first_id) == 50
    assert await _points(db_session, second_id) == 55


@pytest.mark.asyncio
async def test_insufficient_balance_rejected_before_debit(db_session, make_user, make_prediction, store, cache):
    author = await make_user(role="staff")
    player = await make_user(points=5)
    prediction = await make_prediction(author, cost=10)
    player_id, prediction_id = player.id, prediction.id

    with pytest.raises(InsufficientBalanceError):
        await service.submit_guess(db_session, store, cache, prediction_id, player_id, "Paris")
    await db_session.rollback()

    assert await _points(db_session, player_id) == 5
    refreshed = await db_session.get(Prediction, prediction_id, populate_existing=True)
    assert refreshed.status == "active"


@pytest.mark.asyncio
async def test_missing_prediction(db_session, make_user, store, cache):
    player = await make_user(points=5)
    with pytest.raises(PredictionNotFound):
        await service.submit_guess(db_session, store, cache, 12345, player.id, "x")


@pytest.mark.asyncio
async def test_already_won_checked_before_status(db_session, make_user, make_prediction, store, cache):
    author = await make_user(role="staff")
    player = await make_user(points=50)
    prediction = await make_prediction(author, cost=0)
    db_session.add(UserPredictionAttempt(
        user_id=player.id, prediction_id=prediction.id, guess="Paris", is_correct=True, points_spent=0,
    ))
    await db_session.commit()

    with pytest.raises(AlreadyWon):
        await service.submit_guess(db_session, store, cache, prediction.id, player.id, "Paris")


@pytest.mark.asyncio
async def test_resolution_invalidates_listing_cache(db_session, make_user, make_prediction, store, cache):
    author = await make_user(role="staff")
    player = await make_user(points=50)
    prediction = await make_prediction(author)

    items, hit = await service.list_public_predictions(db_session, store, cache)
    assert not hit
    assert items[0]["status"] == "active"
    _, hit = await service.list_public_predictions(db_session, store, cache)
    assert hit

    await service.submit_guess(db_session, store, cache, prediction.id, player.id, "Paris")

    items, hit = await service.list_public_predictions(db_session, store, cache)
    assert not hit
    assert items[0]["status"] == "finished"


@pytest.mark.asyncio
async def test_listing_redacts_for_everyone_but_the_author(db_session, make_user, make_prediction, store, cache):
    author = await make_user(role="staff")
    other_admin = await make_user(role="admin")
    await make_prediction(author, answer="Paris")

    anonymous, _ = await service.list_public_predictions(db_session, store, cache)
    as_admin, _ = await service.list_public_predictions(db_session, store, cache, Identity(other_admin.id, "admin"))
    as_author, _ = await service.list_public_predictions(db_session, store, cache, Identity(author.id, "staff"))

    assert anonymous[0]["answer"] == REDACTED_ANSWER
    assert as_admin[0]["answer"] == REDACTED_ANSWER
    assert as_author[0]["answer"] == "Paris"
    # The shared snapshot stays redacted
    cached, hit = cache.get()
    assert hit
    assert cached[0]["answer"] == REDACTED_ANSWER


@pytest.mark.asyncio
async def test_only_author_may_modify(db_session, make_user, make_prediction):
    author = await make_user(role="staff")
    other = await make_user(role="admin")
    prediction = await make_prediction(author)

    with pytest.raises(ForbiddenError):
        await resolve_author_access(db_session, prediction.id, Identity(other.id, "admin"))


@pytest.mark.asyncio
async def test_update_reencrypts_and_finished_is_frozen(db_session, make_user, make_prediction, store, cache):
    author = await make_user(role="staff")
    prediction = await make_prediction(author, answer="Paris")
    access = await resolve_author_access(db_session, prediction.id, Identity(author.id, "staff"))

    updated = await service.update_prediction(db_session, store, cache, access, {"correct_answer": "Lyon"})
    assert store.decrypt(updated.answer) == "Lyon"

    admin = await make_user(role="admin")
    await service.close_prediction(db_session, cache, prediction.id, Identity(admin.id, "admin"), "finished")
    access = await resolve_author_access(db_session, prediction.id, Identity(author.id, "staff"))
    with pytest.raises(PredictionNotActive):
        await service.update_prediction(db_session, store, cache, access, {"title": "New"})


@pytest.mark.asyncio
async def test_staff_cannot_close(db_session, make_user, make_prediction, cache):
    author = await make_user(role="staff")
    prediction = await make_prediction(author)
    with pytest.raises(ForbiddenError):
        await service.close_prediction(db_session, cache, prediction.id, Identity(author.id, "staff"), "finished")


@pytest.mark.asyncio
async def test_stats_and_attempt_pages(db_session, make_user, make_prediction, store, cache):
    author = await make_user(role="staff")
    player = await make_user(points=100)
    prediction = await make_prediction(author, cost=10)
    for guess in ("a", "b", "c"):
        await service.submit_guess(db_session, store, cache, prediction.id, player.id, guess)

    stats = await service.prediction_stats(db_session, [prediction.id])
    assert stats[prediction.id] == {
        "total_participants": 3,
        "total_points": 30,
        "average_points": 10,
        "correct_predictions": 0,
    }

    page, total_pages = await service.list_attempts(db_session, prediction.id, page=2, limit=2)
    assert total_pages == 2
    assert len(page) == 1
