from __future__ import annotations

import logging
from dataclasses import replace

from cninfo_watch.context import RunContext, TickResult, resolve_stocks
from cninfo_watch.models import Stock
from cninfo_watch.scheduler import run_loop
from cninfo_watch.watcher import LISTING_FILE, run_dividends

logger = logging.getLogger(__name__)

CODES_FILE = "codes.txt"


def load_monitored_stocks(ctx: RunContext, write_listing: bool) -> list[Stock]:
    listing = ctx.client.fetch_stock_list()
    if write_listing and listing:
        ctx.store.write_stocks(LISTING_FILE, listing)
    codes = list(ctx.settings.codes) + ctx.store.read_codes(CODES_FILE)
    return resolve_stocks(listing, codes)


def run(ctx: RunContext, loop: bool = False, max_ticks: int | None = None) -> int:
    """Check dividends once, or every day at the trigger hour when ``loop`` is set.

    A single run also refreshes the listing and dividend history files;
    the daily loop only notifies.
    """
    stocks = load_monitored_stocks(ctx, write_listing=not loop)
    if not stocks:
        logger.info("no stock to %s", "monitor" if loop else "update")
        return 0
    for stock in stocks:
        logger.info("%s stock. code=%s", "monitoring" if loop else "updating", stock.code)

    ctx = replace(ctx, stocks=stocks)

    def tick() -> TickResult:
        result = run_dividends(ctx, write_history=not loop)
        logger.info("dividend check finished. %s", result.message)
        return result

    return run_loop(
        tick,
        loop=loop,
        hour=ctx.settings.trigger_hour,
        max_ticks=max_ticks,
    )
