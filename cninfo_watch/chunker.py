"""Windowed history queries over spans longer than the upstream allows."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Protocol

from cninfo_watch.cninfo_client import (
    ANNUAL_REPORT_CATEGORY,
    STATIC_BASE_URL,
    AnnouncementQuery,
)
from cninfo_watch.date_range import date_windows
from cninfo_watch.errors import InvalidRange, RangeTooLarge
from cninfo_watch.models import Announcement, AnnualReport, Stock

logger = logging.getLogger(__name__)

WINDOW_YEARS = 3
MAX_SPAN = timedelta(days=365 * 30)


class AnnouncementSource(Protocol):
    def query_announcements(self, query: AnnouncementQuery) -> list[Announcement]: ...


def fetch_announcements_in_range(
    source: AnnouncementSource,
    stock: Stock,
    start: date,
    end: date,
    category: str = ANNUAL_REPORT_CATEGORY,
    window_years: int = WINDOW_YEARS,
) -> list[Announcement]:
    """Fetch every announcement published in ``[start, end]``, oldest first.

    Raises ``InvalidRange``/``RangeTooLarge`` before any request is made.
    Any failed sub-request aborts the whole fetch.
    """
    if start > end:
        raise InvalidRange(f"start {start} is after end {end}")
    if end - start > MAX_SPAN:
        raise RangeTooLarge(f"range {start}~{end} exceeds 30 years")

    announcements: list[Announcement] = []
    for window_start, window_end in date_windows(start, end, window_years):
        query = AnnouncementQuery.for_stock(stock, window_start, window_end, category=category)
        page = source.query_announcements(query)
        logger.debug(
            "query announcements. code=%s window=%s count=%d",
            stock.code,
            query.se_date,
            len(page),
        )
        announcements.extend(reversed(page))
    return announcements


def report_year(announcement: Announcement) -> int:
    published = datetime.fromtimestamp(announcement.time / 1000)
    return published.year - 1


def annual_reports_from_announcements(
    announcements: Iterable[Announcement],
    years: Iterable[int],
) -> list[AnnualReport]:
    wanted = set(years)
    reports: list[AnnualReport] = []
    for announcement in announcements:
        if announcement.adjunct_type.upper() != "PDF":
            continue
        year = report_year(announcement)
        if year not in wanted:
            continue
        reports.append(
            AnnualReport(
                year=year,
                title=announcement.title,
                url=STATIC_BASE_URL + announcement.adjunct_url,
                publish_time=announcement.time,
            )
        )
    return reports
