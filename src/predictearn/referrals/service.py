"""Referral codes and the referral trigger.

A referral starts ``pending`` when a new user registers with someone's code
and flips to ``completed`` on the referred user's first successful check-in.
The flip is a conditional UPDATE, so the referrer is paid at most once.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.config import get_settings
from predictearn.db.models import ReferralRecord, User
from predictearn.errors import (
    ReferralCodeAlreadySet,
    ReferralCodeTaken,
    UserNotFound,
    ValidationError,
)
from predictearn.ledger import service as ledger
from predictearn.system_settings.service import get_point_settings

logger = structlog.get_logger()

REFERRAL_CODE_MIN_LENGTH = 4
REFERRAL_CODE_MAX_LENGTH = 64


def normalize_referral_code(code: str) -> str:
    """Trim and upper-case for case-insensitive uniqueness."""
    return code.strip().upper()


async def find_referrer(db: AsyncSession, code: str) -> User | None:
    result = await db.execute(select(User).where(User.referral_code == normalize_referral_code(code)))
    return result.scalar_one_or_none()


async def set_referral_code(db: AsyncSession, user_id: int, code: str) -> str:
    """Set the caller's own code. Allowed once.

    Raises:
        ValidationError: shorter than 4 characters after trimming.
        ReferralCodeAlreadySet: the user already has a code.
        ReferralCodeTaken: another user holds the code.
    """
    normalized = normalize_referral_code(code)
    if len(normalized) < REFERRAL_CODE_MIN_LENGTH:
        raise ValidationError("Referral code must be at least 4 characters.")
    if len(normalized) > REFERRAL_CODE_MAX_LENGTH:
        raise ValidationError("Referral code is too long.")

    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFound
    if user.referral_code:
        raise ReferralCodeAlreadySet
    if await find_referrer(db, normalized) is not None:
        raise ReferralCodeTaken

    try:
        result = await db.execute(
            update(User)
            .where(User.id == user_id, User.referral_code.is_(None))
            .values(referral_code=normalized)
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise ReferralCodeAlreadySet
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ReferralCodeTaken from e

    logger.info("referral_code_set", user_id=user_id)
    return normalized


async def attach_referral(db: AsyncSession, referred_user: User, code: str) -> ReferralRecord:
    """Create the pending referral for a freshly registered user. Does not commit.

    Raises:
        ValidationError: unknown code or self-referral.
    """
    referrer = await find_referrer(db, code)
    if referrer is None or referrer.id == referred_user.id:
        raise ValidationError("Invalid referral code")

    referred_user.referred_by_id = referrer.id
    record = ReferralRecord(
        referring_user_id=referrer.id,
        referred_user_id=referred_user.id,
        status="pending",
    )
    db.add(record)
    await db.flush()
    logger.info("referral_pending", referrer_id=referrer.id, referred_id=referred_user.id)
    return record


async def complete_pending_referral(db: AsyncSession, referred_user_id: int) -> bool:
    """Complete the referred user's pending referral and pay the referrer. Does not commit.

    Every ``referral_milestone_every``-th completed referral also pays the
    milestone bonus. Returns True if a referral was completed by this call.
    """
    now = datetime.now(timezone.utc)
    flipped = await db.execute(
        update(ReferralRecord)
        .where(ReferralRecord.referred_user_id == referred_user_id, ReferralRecord.status == "pending")
        .values(status="completed", completed_at=now)
        .returning(ReferralRecord.referring_user_id)
    )
    referrer_id = flipped.scalar_one_or_none()
    if referrer_id is None:
        return False

    counted = await db.execute(
        update(User)
        .where(User.id == referrer_id)
        .values(total_successful_referrals=User.total_successful_referrals + 1)
        .returning(User.total_successful_referrals)
        .execution_options(synchronize_session=False)
    )
    total = counted.scalar_one_or_none()
    if total is None:
        # Referrer deleted since registration
        return True

    point_settings = await get_point_settings(db)
    await ledger.record(
        db, referrer_id, point_settings.referral_points, "referral",
        notes=f"Referral completed by user {referred_user_id}",
    )

    every = get_settings().referral_milestone_every
    if every > 0 and total % every == 0:
        await ledger.record(
            db, referrer_id, point_settings.milestone_points, "referral",
            notes=f"Milestone bonus for {total} successful referrals",
        )
        logger.info("referral_milestone_reached", referrer_id=referrer_id, total=total)

    logger.info("referral_completed", referrer_id=referrer_id, referred_id=referred_user_id)
    return True


async def list_referrals(db: AsyncSession, user_id: int) -> list[ReferralRecord]:
    result = await db.execute(
        select(ReferralRecord)
        .where(ReferralRecord.referring_user_id == user_id)
        .order_by(ReferralRecord.created_at.desc(), ReferralRecord.id.desc())
    )
    return list(result.scalars().unique().all())
