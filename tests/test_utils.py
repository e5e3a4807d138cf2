from datetime import date

from momcare.utils import gestational_week, normalize_date_key, round_half_up, to_date_only


def test_to_date_only():
    assert to_date_only("2025-03-10") == date(2025, 3, 10)
    assert to_date_only("2025-03-10T23:30:00+05:30") == date(2025, 3, 10)
    assert to_date_only("2025-03-10T01:00:00+05:30") == date(2025, 3, 9)
    assert to_date_only("2025-02-30") is None
    assert to_date_only("soon") is None
    assert to_date_only(None) is None


def test_normalize_date_key():
    assert normalize_date_key(" 2025-01-05 ") == "2025-01-05"
    assert normalize_date_key("") == ""


def test_gestational_week_is_clamped():
    start = date(2025, 1, 1)
    assert gestational_week(start, today=date(2025, 1, 1)) == 1
    assert gestational_week(start, today=date(2025, 1, 8)) == 2
    assert gestational_week(start, today=date(2024, 12, 1)) == 1
    assert gestational_week(start, today=date(2026, 1, 1)) == 40


def test_round_half_up():
    assert round_half_up(34.5) == 35
    assert round_half_up(32.5) == 33
    assert round_half_up(34.4) == 34
    assert round_half_up(-0.5) == 0
