"""Period resolution.

Turns the periods a tutor picked (named weeks, months, custom ranges) into a
date predicate. Periods may overlap; membership is union semantics, so a date
inside two periods still matches once, labelled by the first period that
contains it.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta

from app.scheduling.models import Period, PeriodKind, Weekday


@dataclass(frozen=True)
class PeriodMatch:
    """Outcome of testing a date against the resolved periods."""

    in_period: bool
    label: str | None = None


class PeriodResolver:
    """Date-membership predicate over a set of periods.

    Periods with identical (start, end) are kept once, first occurrence wins.
    Lookup is a linear first-match scan, which is adequate for the handful of
    periods a user picks at a time.
    """

    def __init__(self, periods: list[Period]):
        seen: set[tuple[date, date]] = set()
        self.periods: list[Period] = []
        for period in periods:
            bounds = (period.start, period.end)
            if bounds in seen:
                continue
            seen.add(bounds)
            self.periods.append(period)

    def match(self, day: date) -> PeriodMatch:
        for period in self.periods:
            if period.contains(day):
                return PeriodMatch(in_period=True, label=period.label)
        return PeriodMatch(in_period=False)

    def __contains__(self, day: date) -> bool:
        return self.match(day).in_period

    def __len__(self) -> int:
        return len(self.periods)

    def merged_intervals(self) -> list[tuple[date, date]]:
        """Return the union of all periods as sorted, non-overlapping ranges.

        Adjacent ranges (one ends the day before the next starts) are merged.
        """
        intervals = sorted((p.start, p.end) for p in self.periods)
        merged: list[tuple[date, date]] = []
        for start, end in intervals:
            if merged and start <= merged[-1][1] + timedelta(days=1):
                last_start, last_end = merged[-1]
                merged[-1] = (last_start, max(last_end, end))
            else:
                merged.append((start, end))
        return merged


def week_period(
    anchor: date,
    offset_weeks: int = 0,
    week_starts_on: Weekday = Weekday.SUNDAY,
) -> Period:
    """Return the week containing ``anchor``, shifted by ``offset_weeks``.

    ``week_period(today)`` is "this week", ``week_period(today, 1)`` is "next week".
    """
    days_since_start = (anchor.weekday() - week_starts_on) % 7
    start = anchor - timedelta(days=days_since_start) + timedelta(weeks=offset_weeks)
    end = start + timedelta(days=6)
    if offset_weeks == 0:
        label = "This week"
    elif offset_weeks == 1:
        label = "Next week"
    else:
        label = f"Week of {start.isoformat()}"
    return Period(start=start, end=end, kind=PeriodKind.WEEK, label=label)


def month_period(year: int, month: int) -> Period:
    """Return the whole calendar month."""
    last_day = calendar.monthrange(year, month)[1]
    start = date(year, month, 1)
    return Period(
        start=start,
        end=date(year, month, last_day),
        kind=PeriodKind.MONTH,
        label=start.strftime("%B %Y"),
    )


def custom_period(start: date, end: date, label: str | None = None) -> Period:
    return Period(start=start, end=end, kind=PeriodKind.CUSTOM, label=label)
