"""Dashboard bucketing: pure tests for month windows."""

from datetime import datetime, timezone

from atreo.services.dashboard_service import TIME_FRAMES, month_starts


def test_month_starts_oldest_first():
    now = datetime(2025, 3, 20, 13, 45, tzinfo=timezone.utc)
    starts = month_starts(now, 3)
    assert [s.strftime("%Y-%m-%d") for s in starts] == ["2025-01-01", "2025-02-01", "2025-03-01"]


def test_month_starts_crosses_year_boundary():
    now = datetime(2025, 2, 1, tzinfo=timezone.utc)
    starts = month_starts(now, 4)
    assert [s.strftime("%Y-%m") for s in starts] == ["2024-11", "2024-12", "2025-01", "2025-02"]


def test_month_starts_are_midnight():
    now = datetime(2025, 3, 20, 13, 45, 10, 5, tzinfo=timezone.utc)
    assert month_starts(now, 1)[0] == datetime(2025, 3, 1, tzinfo=timezone.utc)


def test_time_frames():
    assert TIME_FRAMES == {"1month": 1, "3months": 3, "6months": 6, "1year": 12}
