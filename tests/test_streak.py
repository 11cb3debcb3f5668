"""Unit tests for the consecutive-day streak."""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo
from signlearn.services.streak import calculate_streak, collect_day_keys, day_key

TODAY = date(2024, 3, 15)


def keys_for(*days_ago):
    return {(TODAY - timedelta(days=n)).isoformat() for n in days_ago}


class TestDayKey:
    """Tests for timestamp to calendar-day normalization."""

    def test_naive_timestamp_treated_as_utc(self):
        assert day_key(datetime(2024, 3, 15, 23, 30), timezone.utc) == "2024-03-15"

    def test_local_zone_shifts_day(self):
        """22:00 UTC is already the next morning in India."""
        kolkata = ZoneInfo("Asia/Kolkata")
        assert day_key(datetime(2024, 3, 15, 22, 0), kolkata) == "2024-03-16"

    def test_collect_ignores_missing_timestamps(self):
        keys = collect_day_keys(
            [datetime(2024, 3, 15, 8), datetime(2024, 3, 15, 20), None, datetime(2024, 3, 14, 1)],
            timezone.utc,
        )
        assert keys == {"2024-03-15", "2024-03-14"}


class TestCalculateStreak:
    """Tests for the backward walk from today."""

    def test_no_events(self):
        assert calculate_streak(set(), TODAY) == 0

    def test_today_only(self):
        assert calculate_streak(keys_for(0), TODAY) == 1

    def test_three_consecutive_days(self):
        assert calculate_streak(keys_for(0, 1, 2), TODAY) == 3

    def test_gap_stops_walk(self):
        """Today, yesterday, then a gap: older days don't count."""
        assert calculate_streak(keys_for(0, 1, 3, 4, 5), TODAY) == 2

    def test_requires_today(self):
        """Activity only in the past gives no streak."""
        assert calculate_streak(keys_for(1, 2, 3), TODAY) == 0

    def test_capped_at_thirty(self):
        assert calculate_streak(keys_for(*range(45)), TODAY) == 30

    def test_custom_cap(self):
        assert calculate_streak(keys_for(*range(10)), TODAY, max_days=7) == 7

    def test_streak_never_exceeds_distinct_days(self):
        keys = keys_for(0, 1, 2, 4)
        assert calculate_streak(keys, TODAY) <= len(keys)
