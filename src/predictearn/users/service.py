"""User registration and profile reads."""

from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.auth.password import check_password_policy, hash_password
from predictearn.db.models import User
from predictearn.errors import ConflictError, UserNotFound, ValidationError
from predictearn.referrals.service import attach_referral

logger = structlog.get_logger()


async def register_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    referral_code: str | None = None,
) -> User:
    """Create a player account, pending-referred when a valid code is given. Commits.

    Raises:
        ValidationError: short password, blank name or unknown referral code.
        ConflictError: email already registered.
    """
    name = name.strip()
    email = email.strip().lower()
    if not name:
        raise ValidationError("Name is required")
    check_password_policy(password)

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Email already registered")

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role="user",
        points=0,
        order_points=0,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Email already registered") from e

    if referral_code and referral_code.strip():
        try:
            await attach_referral(db, user, referral_code)
        except ValidationError:
            await db.rollback()
            raise

    await db.commit()
    await db.refresh(user)
    logger.info("user_registered", user_id=user.id, referred=user.referred_by_id is not None)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise UserNotFound
    return user
