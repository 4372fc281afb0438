from __future__ import annotations

from datetime import date, timedelta

EARLIEST = date(2000, 1, 1)


def add_years(value: date, years: int) -> date:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # Feb 29 in a non-leap target year rolls over to Mar 1.
        return value.replace(year=value.year + years, month=3, day=1)


def date_windows(start: date, end: date, years: int) -> list[tuple[date, date]]:
    """Split ``[start, end]`` into consecutive windows of at most ``years`` years.

    Each window after the first begins the day after the previous one ended,
    so windows never overlap and leave no gap.
    """
    windows: list[tuple[date, date]] = []
    window_start = start
    while True:
        window_end = min(add_years(window_start, years), end)
        windows.append((window_start, window_end))
        if window_end >= end:
            return windows
        window_start = window_end + timedelta(days=1)


def years_between(start: date, end: date) -> list[int]:
    years: list[int] = []
    current = start
    while current <= end:
        years.append(current.year)
        current = add_years(current, 1)
    return years


def resolve_year_range(
    today: date,
    since_2000: bool = False,
    specified_years: tuple[int, ...] = (),
) -> tuple[date, date, list[int]]:
    """Return ``(start, end, report_years)`` for an annual-report collection run.

    Reports for year N are published during year N+1, so an explicit year
    list is searched in the publish years that follow it. Years whose
    publish year lies outside [2000, today] are dropped; an empty year list
    means there is nothing to search.
    """
    if specified_years:
        years = [
            year
            for year in sorted(set(specified_years))
            if EARLIEST.year <= year + 1 <= today.year
        ]
        if not years:
            return today, today, []
        start = max(date(years[0] + 1, 1, 1), EARLIEST)
        end = min(date(years[-1] + 1, 12, 31), today)
        return start, end, years

    start = EARLIEST if since_2000 else add_years(today, -3)
    return start, today, years_between(start, today)
