from datetime import UTC, datetime

from admissions.app.core.time import format_schedule, parse_schedule, utc_now


def test_utc_now_is_timezone_aware_utc():
    value = utc_now()
    assert value.tzinfo is UTC


def test_parse_schedule_combines_date_and_time():
    assert parse_schedule("2025-03-05", "16:30") == datetime(2025, 3, 5, 16, 30, tzinfo=UTC)


def test_parse_schedule_without_time_is_end_of_day():
    assert parse_schedule("2025-03-05", "") == datetime(2025, 3, 5, 23, 59, 59, tzinfo=UTC)


def test_parse_schedule_rejects_missing_or_bad_values():
    assert parse_schedule("", "10:00") is None
    assert parse_schedule(None, None) is None
    assert parse_schedule("05/03/2025", "10:00") is None
    assert parse_schedule("2025-03-05", "half past") is None


def test_format_schedule():
    assert format_schedule("2025-03-05", "16:30") == "05 Mar 2025 at 04:30 PM"
    assert format_schedule("2025-03-05") == "05 Mar 2025"
    assert format_schedule("") == "Not set"
