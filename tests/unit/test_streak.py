"""Unit tests for the check-in streak transition."""

from datetime import date, datetime, timedelta, timezone

from predictearn.checkin.streak import effective_streak, next_streak, today_utc

DAY = timedelta(days=1)
START = date(2026, 3, 1)


def _run(days: int):
    """Check in on ``days`` consecutive days; return the transitions."""
    last, stored, out = None, 0, []
    for i in range(days):
        today = START + i * DAY
        t = next_streak(last, stored, today)
        out.append(t)
        last, stored = today, t.stored_streak
    return out


class TestNextStreak:

    def test_first_check_in_starts_at_one(self):
        t = next_streak(None, 0, START)
        assert (t.stored_streak, t.display_streak, t.bonus_awarded) == (1, 1, False)

    def test_days_one_to_six_count_up(self):
        transitions = _run(6)
        assert [t.display_streak for t in transitions] == [1, 2, 3, 4, 5, 6]
        assert [t.stored_streak for t in transitions] == [1, 2, 3, 4, 5, 6]
        assert not any(t.bonus_awarded for t in transitions)

    def test_seventh_day_awards_bonus_and_resets_storage(self):
        seventh = _run(7)[-1]
        assert seventh.bonus_awarded
        assert seventh.display_streak == 7
        assert seventh.stored_streak == 0

    def test_eighth_day_starts_new_cycle(self):
        eighth = _run(8)[-1]
        assert (eighth.stored_streak, eighth.display_streak, eighth.bonus_awarded) == (1, 1, False)

    def test_fourteen_days_two_bonuses(self):
        assert sum(t.bonus_awarded for t in _run(14)) == 2

    def test_gap_resets(self):
        t = next_streak(START, 5, START + 2 * DAY)
        assert t.stored_streak == 1
        assert not t.bonus_awarded

    def test_same_day_does_not_continue(self):
        t = next_streak(START, 3, START)
        assert t.stored_streak == 1

    def test_custom_bonus_day(self):
        t = next_streak(START, 2, START + DAY, bonus_day=3)
        assert t.bonus_awarded
        assert t.stored_streak == 0


class TestEffectiveStreak:

    def test_never_checked_in(self):
        assert effective_streak(None, 0, START) == 0

    def test_yesterday_keeps_run(self):
        assert effective_streak(START, 4, START + DAY) == 4

    def test_missed_day_reads_as_zero(self):
        assert effective_streak(START, 4, START + 2 * DAY) == 0


def test_today_utc_uses_utc_calendar():
    late_evening_west = datetime(2026, 3, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    assert today_utc(late_evening_west) == date(2026, 3, 2)
