"""Daily streak transition.

Streak days are calendar dates, so the daily reset needs no job: a check-in
continues the streak only when the previous one was exactly yesterday.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

STREAK_BONUS_DAY = 7


@dataclass(frozen=True)
class StreakTransition:
    """Outcome of a successful check-in.

    ``display_streak`` is what the caller is shown for this one response.
    It differs from ``stored_streak`` only on the bonus day, where the stored
    counter resets to 0 while the response still reports the full run.
    Never persist ``display_streak``.
    """

    stored_streak: int
    display_streak: int
    bonus_awarded: bool


def today_utc(now: datetime | None = None) -> date:
    """Calendar day used to key check-ins."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).date()


def next_streak(
    last_check_in: date | None,
    current_streak: int,
    today: date,
    bonus_day: int = STREAK_BONUS_DAY,
) -> StreakTransition:
    """Compute the streak after a correct check-in on ``today``."""
    if last_check_in is not None and today - last_check_in == timedelta(days=1):
        new_streak = current_streak + 1
    else:
        new_streak = 1

    if new_streak >= bonus_day:
        return StreakTransition(stored_streak=0, display_streak=new_streak, bonus_awarded=True)
    return StreakTransition(stored_streak=new_streak, display_streak=new_streak, bonus_awarded=False)


def effective_streak(last_check_in: date | None, stored_streak: int, today: date) -> int:
    """Streak as of ``today``: a run survives only if the last check-in was today or yesterday."""
    if last_check_in is None:
        return 0
    if today - last_check_in > timedelta(days=1):
        return 0
    return stored_streak
