"""Referral codes, registration with a code, and the check-in trigger."""

from datetime import date

import pytest
from sqlalchemy import select

from predictearn.checkin import service as checkin
from predictearn.db.models import ReferralRecord, User
from predictearn.errors import ReferralCodeAlreadySet, ReferralCodeTaken, ValidationError
from predictearn.referrals import service as referrals
from predictearn.users.service import register_user

TODAY = date(2026, 4, 1)


@pytest.mark.asyncio
async def test_set_code_once_normalized(db_session, make_user):
    user = await make_user()
    assert await referrals.set_referral_code(db_session, user.id, "  alice ") == "ALICE"
    with pytest.raises(ReferralCodeAlreadySet):
        await referrals.set_referral_code(db_session, user.id, "OTHER")


@pytest.mark.asyncio
async def test_code_taken_case_insensitively(db_session, make_user):
    await make_user(referral_code="ALICE")
    other = await make_user()
    with pytest.raises(ReferralCodeTaken):
        await referrals.set_referral_code(db_session, other.id, "alice")


@pytest.mark.asyncio
async def test_short_code_rejected(db_session, make_user):
    user = await make_user()
    with pytest.raises(ValidationError):
        await referrals.set_referral_code(db_session, user.id, " ab ")


@pytest.mark.asyncio
async def test_register_with_unknown_code_creates_nothing(db_session):
    with pytest.raises(ValidationError):
        await register_user(db_session, "Bob", "bob@example.com", "secret1", referral_code="NOPE")
    found = await db_session.scalar(select(User.id).where(User.email == "bob@example.com"))
    assert found is None


@pytest.mark.asyncio
async def test_first_check_in_completes_referral_once(db_session, make_user, make_question):
    referrer = await make_user(referral_code="ALICE")
    newcomer = await register_user(db_session, "Bob", "bob@example.com", "secret1", referral_code="alice")
    assert newcomer.referred_by_id == referrer.id

    q1 = await make_question(answer="x")
    q2 = await make_question(answer="x")
    await checkin.submit_answer(db_session, newcomer.id, q1.id, "x", TODAY)
    await checkin.submit_answer(db_session, newcomer.id, q2.id, "x", date(2026, 4, 2))

    record = (await db_session.execute(
        select(ReferralRecord).where(ReferralRecord.referred_user_id == newcomer.id)
        .execution_options(populate_existing=True)
    )).scalar_one()
    assert record.status == "completed"

    paid = await db_session.get(User, referrer.id, populate_existing=True)
    assert paid.points == 100
    assert paid.total_successful_referrals == 1


@pytest.mark.asyncio
async def test_tenth_referral_pays_milestone(db_session, make_user):
    referrer = await make_user(referral_code="ALICE")
    referrer.total_successful_referrals = 9
    await db_session.commit()

    newcomer = await register_user(db_session, "Ten", "ten@example.com", "secret1", referral_code="ALICE")
    assert await referrals.complete_pending_referral(db_session, newcomer.id) is True
    await db_session.commit()
    assert await referrals.complete_pending_referral(db_session, newcomer.id) is False

    paid = await db_session.get(User, referrer.id, populate_existing=True)
    assert paid.total_successful_referrals == 10
    assert paid.points == 100 + 500
