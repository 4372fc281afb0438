from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable

from cninfo_watch.chunker import annual_reports_from_announcements, fetch_announcements_in_range
from cninfo_watch.context import RunContext, TickResult
from cninfo_watch.date_range import resolve_year_range
from cninfo_watch.errors import UpstreamError
from cninfo_watch.merge import merge_annual_reports
from cninfo_watch.models import AnnualReport, Database, TrackedStock
from cninfo_watch.retry import COLLECTOR_FETCH, RetryPolicy
from cninfo_watch.storage import DatabaseStore

logger = logging.getLogger(__name__)


@dataclass
class CollectorOptions:
    since_2000: bool = False
    years: tuple[int, ...] = ()
    download: bool = False


@dataclass
class CollectResult:
    added_stocks: int
    reports: TickResult
    downloaded: int = 0

    @property
    def message(self) -> str:
        return (
            f"added_stocks={self.added_stocks} {self.reports.message} "
            f"downloaded={self.downloaded}"
        )


class ReportCollector:
    def __init__(
        self,
        ctx: RunContext,
        options: CollectorOptions,
        db_store: DatabaseStore | None = None,
        fetch_retry: RetryPolicy = COLLECTOR_FETCH,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ctx = ctx
        self.options = options
        self.db_store = db_store or DatabaseStore(ctx.settings.db_path)
        self.fetch_retry = fetch_retry
        self.sleep = sleep
        self.clock = clock

    def run(self) -> CollectResult:
        database = self.db_store.load()
        added = self.update_stocks(database)
        self.db_store.save(database)

        reports = self.update_annual_reports(database)

        downloaded = 0
        if self.options.download:
            downloaded = self.download_annual_reports(database)
        return CollectResult(added_stocks=added, reports=reports, downloaded=downloaded)

    def update_stocks(self, database: Database) -> int:
        """Add listed stocks not yet in the database. Nothing is ever removed."""
        added = 0
        for stock in self.ctx.client.fetch_stock_list():
            tracked = TrackedStock(
                code=stock.code,
                name=stock.name,
                pinyin=stock.pinyin,
                org_id=stock.org_id,
            )
            if database.add(tracked):
                added += 1
                logger.debug("add stock. code=%s name=%s", stock.code, stock.name)
        database.sort()
        logger.info("update stock list done. added=%d total=%d", added, len(database.stocks))
        return added

    def due_stocks(self, database: Database) -> list[TrackedStock]:
        now = int(self.clock())
        interval = self.ctx.settings.check_interval_seconds
        due: list[TrackedStock] = []
        for stock in database.stocks:
            if now - stock.annual_report_check_time < interval:
                logger.debug("skip stock annual report. code=%s", stock.code)
                continue
            due.append(stock)
        return due

    def update_annual_reports(self, database: Database) -> TickResult:
        start, end, years = resolve_year_range(
            self.ctx.today(),
            since_2000=self.options.since_2000,
            specified_years=self.options.years,
        )
        logger.info("collect annual reports. range=%s~%s years=%s", start, end, years)
        if not years:
            logger.info("nothing to search, no report year within 2000~%s", end)
            return TickResult()

        stocks = self.due_stocks(database)
        settings = self.ctx.settings
        result = TickResult()
        for stock in stocks:
            result.checked += 1
            try:
                fetched = self.fetch_annual_reports(stock, start, end, years)
            except UpstreamError as exc:
                result.failed += 1
                logger.error("get annual reports failed, skip. code=%s err='%s'", stock.code, exc)
            else:
                merged = merge_annual_reports(stock.annual_reports, fetched)
                stock.annual_reports = merged.items
                stock.annual_report_check_time = int(self.clock())
                result.new_items += len(merged.delta)
                for report in merged.delta:
                    logger.info("add annual report. code=%s title=%s", stock.code, report.title)

            logger.info("update stock annual report %d/%d", result.checked, len(stocks))
            if result.checked % settings.checkpoint_every == 0:
                self.sleep(settings.update_interval_ms * 2 / 1000)
                self.db_store.save(database)
            else:
                self.sleep(settings.update_interval_ms / 1000)

        self.db_store.save(database)
        return result

    def fetch_annual_reports(
        self,
        stock: TrackedStock,
        start: date,
        end: date,
        years: list[int],
    ) -> list[AnnualReport]:
        announcements = self.fetch_retry.call(
            fetch_announcements_in_range,
            self.ctx.client,
            stock.as_stock(),
            start,
            end,
            retry_on=(UpstreamError,),
            sleep=self.sleep,
        )
        return annual_reports_from_announcements(announcements, years)

    def report_path(self, stock: TrackedStock, report: AnnualReport) -> Path:
        filename = report.title.replace("/", "_").replace("\\", "_") + ".pdf"
        return self.ctx.settings.download_dir / stock.code / filename

    def download_annual_reports(self, database: Database) -> int:
        downloaded = 0
        for stock in database.stocks:
            for report in stock.annual_reports:
                target = self.report_path(stock, report)
                if target.exists():
                    logger.debug("report already downloaded, skip. file=%s", target)
                    continue
                try:
                    self.ctx.client.download(report.url, target)
                except UpstreamError as exc:
                    logger.error("download annual report failed. code=%s err='%s'", stock.code, exc)
                    continue
                downloaded += 1
                logger.info("download annual report success. file=%s", target)
        return downloaded
