"""Admin-editable point economy settings.

Each key has a default taken from ``Settings``; a row in ``system_settings``
overrides it. Seeding inserts only missing keys, so it is safe on every start.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from predictearn.config import get_settings
from predictearn.db.dialect import dialect_insert
from predictearn.db.models import SystemSetting
from predictearn.errors import ValidationError

logger = structlog.get_logger()

# setting_key -> (Settings attribute holding the default, description)
SETTING_DEFAULTS: dict[str, tuple[str, str]] = {
    "checkInPoints": ("checkin_points", "Points awarded for daily check-in"),
    "streakBonusPoints": ("streak_bonus_points", "Bonus points for 7-day check-in streak"),
    "referralPoints": ("referral_points", "Points for successful referral"),
    "milestone10Points": ("referral_milestone_points", "Bonus points for every 10 successful referrals"),
    "pointPrice": ("point_price", "Currency per 1 point"),
}


@dataclass(frozen=True)
class PointSettings:
    checkin_points: int
    streak_bonus_points: int
    referral_points: int
    milestone_points: int
    point_price: int


def _defaults() -> dict[str, int]:
    settings = get_settings()
    return {key: int(getattr(settings, attr)) for key, (attr, _) in SETTING_DEFAULTS.items()}


async def seed_system_settings(db: AsyncSession) -> int:
    """Insert default rows for missing keys. Returns number inserted."""
    inserted = 0
    for key, value in _defaults().items():
        stmt = (
            dialect_insert(db, SystemSetting)
            .values(setting_key=key, setting_value=value, description=SETTING_DEFAULTS[key][1])
            .on_conflict_do_nothing(index_elements=["setting_key"])
        )
        result = await db.execute(stmt)
        inserted += result.rowcount or 0
    await db.commit()
    if inserted:
        logger.info("system_settings_seeded", inserted=inserted)
    return inserted


async def get_setting_values(db: AsyncSession) -> dict[str, int]:
    """All known keys with stored overrides applied."""
    values = _defaults()
    result = await db.execute(select(SystemSetting).where(SystemSetting.setting_key.in_(SETTING_DEFAULTS)))
    for row in result.scalars():
        values[row.setting_key] = row.setting_value
    return values


async def get_point_settings(db: AsyncSession) -> PointSettings:
    values = await get_setting_values(db)
    return PointSettings(
        checkin_points=values["checkInPoints"],
        streak_bonus_points=values["streakBonusPoints"],
        referral_points=values["referralPoints"],
        milestone_points=values["milestone10Points"],
        point_price=values["pointPrice"],
    )


async def update_setting(db: AsyncSession, key: str, value: int) -> int:
    """Set one key. Raises ValidationError for unknown keys or non-positive values."""
    if key not in SETTING_DEFAULTS:
        raise ValidationError(f"Unknown setting '{key}'")
    if value <= 0:
        raise ValidationError("Setting value must be a positive integer")

    result = await db.execute(
        update(SystemSetting).where(SystemSetting.setting_key == key).values(setting_value=value)
    )
    if not result.rowcount:
        db.add(SystemSetting(setting_key=key, setting_value=value, description=SETTING_DEFAULTS[key][1]))
    await db.commit()
    logger.info("system_setting_updated", key=key, value=value)
    return value
