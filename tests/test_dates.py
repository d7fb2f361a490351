# tests/test_dates.py
from datetime import date, datetime, timedelta, timezone

from recite_tutor.dates import day_key, shift_day, to_local_date, today_key, week_key


def test_day_key_from_date():
    assert day_key(date(2024, 1, 2)) == "2024-01-02"


def test_day_key_same_local_day_same_key():
    morning = datetime(2024, 3, 5, 0, 1)
    night = datetime(2024, 3, 5, 23, 59)
    assert day_key(morning) == day_key(night) == "2024-03-05"


def test_day_key_aware_datetime_uses_local_zone():
    stamp = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
    assert day_key(stamp) == stamp.astimezone().date().isoformat()


def test_day_key_from_iso_strings():
    assert day_key("2024-03-05") == "2024-03-05"
    local = datetime(2024, 3, 5, 9, 30).astimezone()
    assert day_key(local.isoformat()) == "2024-03-05"


def test_day_key_is_idempotent():
    key = day_key(datetime(2024, 7, 1, 8))
    assert day_key(key) == key


def test_week_key_iso_rules():
    # 2021-01-03 is a Sunday belonging to week 53 of 2020
    assert week_key(date(2021, 1, 3)) == "2020-W53"
    assert week_key(date(2021, 1, 4)) == "2021-W01"
    # 2024-12-30 is a Monday whose Thursday falls in 2025
    assert week_key(date(2024, 12, 30)) == "2025-W01"


def test_week_key_monday_to_sunday():
    monday = date(2024, 5, 6)
    assert {week_key(monday + timedelta(days=i)) for i in range(7)} == {"2024-W19"}
    assert week_key(monday + timedelta(days=7)) == "2024-W20"


def test_shift_day():
    assert shift_day("2024-02-28", 1) == "2024-02-29"
    assert shift_day(date(2024, 3, 1), -1) == "2024-02-29"


def test_today_key_default():
    assert today_key() == date.today().isoformat()
    assert to_local_date(today_key()) == date.today()
