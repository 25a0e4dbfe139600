"""Daily check-in: serving, skipping, answering and streak bonus."""

from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from predictearn.checkin import service
from predictearn.db.models import CheckInRecord, PointTransaction, Question, User
from predictearn.errors import AlreadyCheckedIn, QuestionNotFound, SkipLimitReached

TODAY = date(2026, 3, 10)


async def _count(db, model, **filters):
    stmt = select(func.count()).select_from(model)
    for column, value in filters.items():
        stmt = stmt.where(getattr(model, column) == value)
    return await db.scalar(stmt)


@pytest.mark.asyncio
async def test_correct_answer_records_check_in_and_pays(db_session, make_user, make_question):
    user = await make_user()
    question = await make_question(answer="Paris", points=10)

    result = await service.submit_answer(db_session, user.id, question.id, "  paris ", TODAY)

    assert result.is_correct
    assert result.points_earned == 10
    assert result.streak == 1
    refreshed = await db_session.get(User, user.id, populate_existing=True)
    assert refreshed.points == 10
    assert refreshed.consecutive_check_ins == 1
    assert refreshed.last_check_in_date == TODAY


@pytest.mark.asyncio
async def test_wrong_answer_changes_nothing(db_session, make_user, make_question):
    user = await make_user()
    question = await make_question(answer="Paris")

    result = await service.submit_answer(db_session, user.id, question.id, "Rome", TODAY)

    assert not result.is_correct
    assert await _count(db_session, CheckInRecord, user_id=user.id) == 0
    assert await _count(db_session, PointTransaction, user_id=user.id) == 0
    # May retry
    assert (await service.submit_answer(db_session, user.id, question.id, "Paris", TODAY)).is_correct


@pytest.mark.asyncio
async def test_second_check_in_same_day_conflicts_without_new_transaction(db_session, make_user, make_question):
    user = await make_user()
    q1 = await make_question(answer="a")
    q2 = await make_question(answer="b")
    await service.submit_answer(db_session, user.id, q1.id, "a", TODAY)

    with pytest.raises(AlreadyCheckedIn):
        await service.submit_answer(db_session, user.id, q2.id, "b", TODAY)
    with pytest.raises(AlreadyCheckedIn):
        await service.get_question_for_user(db_session, user.id, TODAY)

    assert await _count(db_session, PointTransaction, user_id=user.id) == 1


@pytest.mark.asyncio
async def test_seventh_consecutive_day_pays_bonus_once(db_session, make_user, make_question):
    user = await make_user()
    questions = [await make_question(text=f"q{i}", answer="x") for i in range(8)]

    results = []
    for i in range(8):
        results.append(await service.submit_answer(db_session, user.id, questions[i].id, "x", TODAY + timedelta(days=i)))

    seventh = results[6]
    assert seventh.bonus_points == 50
    assert seventh.streak == 7
    assert results[7].streak == 1
    assert sum(r.bonus_points for r in results) == 50

    refreshed = await db_session.get(User, user.id, populate_existing=True)
    assert refreshed.points == 8 * 10 + 50
    bonus_rows = await _count(db_session, PointTransaction, user_id=user.id, reason="streak-bonus")
    assert bonus_rows == 1


@pytest.mark.asyncio
async def test_missed_day_resets_streak(db_session, make_user, make_question):
    user = await make_user()
    q1 = await make_question(answer="x")
    q2 = await make_question(answer="x")
    await service.submit_answer(db_session, user.id, q1.id, "x", TODAY)
    result = await service.submit_answer(db_session, user.id, q2.id, "x", TODAY + timedelta(days=2))
    assert result.streak == 1

    status = await service.get_status(db_session, user.id, TODAY + timedelta(days=4))
    assert status.streak == 0
    assert not status.has_checked_in


@pytest.mark.asyncio
async def test_priority_questions_served_first(db_session, make_user, make_question):
    user = await make_user()
    await make_question(text="normal")
    priority = await make_question(text="urgent", is_priority=True)

    served = await service.get_question_for_user(db_session, user.id, TODAY)
    assert served.id == priority.id
    refreshed = await db_session.get(Question, priority.id, populate_existing=True)
    assert refreshed.display_count == 1


@pytest.mark.asyncio
async def test_skips_are_limited_per_day(db_session, make_user, make_question):
    user = await make_user()
    questions = [await make_question(text=f"q{i}") for i in range(5)]

    remaining = [await service.skip_question(db_session, user.id, q.id, TODAY) for q in questions[:3]]
    assert remaining == [2, 1, 0]
    with pytest.raises(SkipLimitReached):
        await service.skip_question(db_session, user.id, questions[3].id, TODAY)

    # A new day restores the allowance
    assert await service.skip_question(db_session, user.id, questions[3].id, TODAY + timedelta(days=1)) == 2


@pytest.mark.asyncio
async def test_exhausted_pool_recycles(db_session, make_user, make_question):
    user = await make_user()
    only = await make_question(text="only one")
    await service.skip_question(db_session, user.id, only.id, TODAY)

    served = await service.get_question_for_user(db_session, user.id, TODAY)
    assert served.id == only.id


@pytest.mark.asyncio
async def test_no_active_questions(db_session, make_user, make_question):
    user = await make_user()
    await make_question(status="inactive")
    with pytest.raises(QuestionNotFound):
        await service.get_question_for_user(db_session, user.id, TODAY)
