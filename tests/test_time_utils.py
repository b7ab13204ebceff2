from datetime import datetime, timedelta, timezone

import pytest

from campus_attendance.utils import format_countdown, format_relative_time, parse_timestamp


def test_format_relative_time_minutes():
    now = datetime(2025, 10, 2, 12, 0, 0)
    timestamp = now - timedelta(minutes=30)
    assert format_relative_time(timestamp, now=now) == "30 minutes ago"


def test_format_relative_time_just_now():
    now = datetime(2025, 10, 2, 12, 0, 0)
    timestamp = now - timedelta(seconds=10)
    assert format_relative_time(timestamp, now=now) == "just now"


def test_format_relative_time_days():
    now = datetime(2025, 10, 2, 12, 0, 0, tzinfo=timezone.utc)
    assert format_relative_time(now - timedelta(days=1, hours=2), now=now) == "Yesterday"
    assert format_relative_time(now - timedelta(days=3), now=now) == "3 days ago"


def test_parse_timestamp_accepts_postgrest_format():
    parsed = parse_timestamp("2025-10-02 09:15:00Z")
    assert parsed == datetime(2025, 10, 2, 9, 15, tzinfo=timezone.utc)


def test_parse_timestamp_converts_offsets_to_utc():
    parsed = parse_timestamp("2025-10-02T12:15:00+03:00")
    assert parsed == datetime(2025, 10, 2, 9, 15, tzinfo=timezone.utc)


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(ValueError):
        parse_timestamp("yesterday-ish")


def test_format_countdown():
    assert format_countdown(None) == "--:--"
    assert format_countdown(900) == "15:00"
    assert format_countdown(61) == "01:01"
    assert format_countdown(-5) == "00:00"
