from __future__ import annotations

import logging
from datetime import date

from cninfo_watch.chunker import fetch_announcements_in_range
from cninfo_watch.context import RunContext, TickResult, resolve_stocks
from cninfo_watch.date_range import EARLIEST, add_years
from cninfo_watch.errors import NotificationError, UpstreamError
from cninfo_watch.merge import merge_announcements, sort_announcements
from cninfo_watch.models import Announcement, Stock

logger = logging.getLogger(__name__)

LISTING_FILE = "stocks.txt"
WATCH_FILE = "watch.txt"
RECENT_YEARS = 3


def refresh_stock_list(ctx: RunContext) -> list[Stock]:
    stocks = ctx.client.fetch_stock_list()
    if not stocks:
        raise UpstreamError("stock list is empty")
    ctx.store.write_stocks(LISTING_FILE, stocks)
    return stocks


def load_watch_list(ctx: RunContext, listing: list[Stock] | None = None) -> list[Stock]:
    """Stocks from the watch file plus any codes configured in settings."""
    stocks = ctx.store.read_stocks(WATCH_FILE)
    if ctx.settings.codes:
        if listing is None:
            listing = ctx.client.fetch_stock_list()
        known = {stock.code for stock in stocks}
        for stock in resolve_stocks(listing, ctx.settings.codes):
            if stock.code not in known:
                stocks.append(stock)
                known.add(stock.code)
    return stocks


def check_report_announcements(
    ctx: RunContext, stock: Stock
) -> tuple[list[Announcement], bool]:
    """Fetch annual-report announcements and persist the ones not seen yet.

    The first run for a stock seeds history since 2000 without notifying.
    Later runs always re-query the last three years. Returns the delta and
    whether a notification went out.
    """
    existing = ctx.store.read_report_announcements(stock.code)
    today = ctx.today()
    start: date = add_years(today, -RECENT_YEARS) if existing else EARLIEST

    fetched = fetch_announcements_in_range(ctx.client, stock, start, today)
    result = merge_announcements(existing, fetched)
    if not result.delta:
        return [], False

    ctx.store.write_report_announcements(stock.code, sort_announcements(result.items))
    logger.info("new report announcements. code=%s count=%d", stock.code, len(result.delta))
    notified = False
    if existing:
        notified = ctx.mailer.notify_reports(stock, sort_announcements(result.delta))
    return result.delta, notified


def run_reports(ctx: RunContext) -> TickResult:
    result = TickResult()
    for stock in ctx.stocks:
        result.checked += 1
        try:
            delta, notified = check_report_announcements(ctx, stock)
        except (UpstreamError, NotificationError) as exc:
            result.failed += 1
            logger.error("check report announcements failed. code=%s err='%s'", stock.code, exc)
            continue
        result.new_items += len(delta)
        result.notified += int(notified)
    return result


def check_dividends(ctx: RunContext, stock: Stock, write_history: bool = True) -> bool:
    records = ctx.client.fetch_dividend_records(stock.code)
    if write_history:
        ctx.store.write_dividend_records(stock.code, records)
    return ctx.mailer.notify_dividend(stock, records, ctx.today())


def run_dividends(ctx: RunContext, write_history: bool = True) -> TickResult:
    result = TickResult()
    for stock in ctx.stocks:
        result.checked += 1
        try:
            if check_dividends(ctx, stock, write_history=write_history):
                result.notified += 1
        except (UpstreamError, NotificationError) as exc:
            result.failed += 1
            logger.error("check dividend records failed. code=%s err='%s'", stock.code, exc)
    return result
