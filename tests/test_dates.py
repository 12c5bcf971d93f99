from datetime import datetime, timezone

from utils.dates import DateInfo, market_now, market_today_iso


def test_naive_datetime_is_treated_as_utc() -> None:
    local = market_now(datetime(2025, 3, 6, 17, 0, 0))
    assert (local.year, local.month, local.day, local.hour) == (2025, 3, 7, 1)


def test_market_date_rolls_over_before_utc(now) -> None:
    late_utc = datetime(2025, 12, 31, 16, 30, tzinfo=timezone.utc)
    assert market_today_iso(late_utc) == "2026-01-01"
    assert market_today_iso(now) == "2025-03-07"


def test_date_info_fields(now) -> None:
    d = DateInfo.from_datetime(now)
    assert (d.year, d.month, d.day) == (2025, 3, 7)
    assert d.full == "2025/3/7 09:30:05"
