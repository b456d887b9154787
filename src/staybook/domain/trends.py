"""
staybook.domain.trends

Time windows and monthly series for earnings statistics.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Literal

TimeRange = Literal["7d", "30d", "90d", "1y", "all"]

_WINDOWS: dict[str, timedelta] = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
}


def range_start(time_range: TimeRange | None, now: datetime) -> datetime | None:
    """
    Lower bound for a time range filter; `None` means unbounded ("all" or no filter).
    """

    if time_range is None or time_range == "all":
        return None
    return now - _WINDOWS[time_range]


def monthly_trend(
    *,
    earnings: Iterable[tuple[datetime, int]],
    bookings: Iterable[datetime],
    year: int,
) -> list[dict[str, int | str]]:
    """
    Bucket paid `(created_at, amount_cents)` rows and booking timestamps into the
    12 months of `year`.

    Every month is present (zero-filled) so charts get a fixed x-axis.
    """

    totals = [0] * 12
    counts = [0] * 12
    for created_at, amount in earnings:
        if created_at.year == year:
            totals[created_at.month - 1] += amount
    for created_at in bookings:
        if created_at.year == year:
            counts[created_at.month - 1] += 1

    return [
        {
            "month": calendar.month_abbr[i + 1],
            "earnings_cents": totals[i],
            "bookings": counts[i],
        }
        for i in range(12)
    ]
