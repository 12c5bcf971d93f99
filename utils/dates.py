"""
utils/dates.py
Market clock pinned to a fixed UTC offset (Beijing time), independent of the
host's local timezone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from config.settings import MARKET_UTC_OFFSET_HOURS

MARKET_TZ = timezone(timedelta(hours=MARKET_UTC_OFFSET_HOURS))


def market_now(now: Optional[datetime] = None) -> datetime:
    """
    Current time in the market timezone.

    A naive ``now`` is taken to be UTC; an aware one is converted.
    """
    if now is None:
        return datetime.now(MARKET_TZ)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(MARKET_TZ)


def market_today_iso(now: Optional[datetime] = None) -> str:
    return market_now(now).date().isoformat()


@dataclass(frozen=True)
class DateInfo:
    year:  int
    month: int
    day:   int
    full:  str      # e.g. 2025/3/5 09:30:00

    @classmethod
    def from_datetime(cls, now: Optional[datetime] = None) -> "DateInfo":
        local = market_now(now)
        return cls(
            year=local.year,
            month=local.month,
            day=local.day,
            full=f"{local.year}/{local.month}/{local.day} {local:%H:%M:%S}",
        )
