from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from cninfo_watch.cninfo_client import CninfoClient
from cninfo_watch.config import Settings
from cninfo_watch.errors import NotFound
from cninfo_watch.mailer import Mailer
from cninfo_watch.models import Stock
from cninfo_watch.retry import NO_RETRY, RetryPolicy
from cninfo_watch.storage import TextStore


@dataclass
class RunContext:
    """Everything a pipeline stage needs, built once per process start."""

    settings: Settings
    client: CninfoClient
    store: TextStore
    mailer: Mailer
    stocks: list[Stock] = field(default_factory=list)
    today: Callable[[], date] = date.today

    @classmethod
    def build(cls, settings: Settings, mail_retry: RetryPolicy = NO_RETRY) -> "RunContext":
        return cls(
            settings=settings,
            client=CninfoClient(timeout_seconds=settings.timeout_seconds),
            store=TextStore(settings.data_dir),
            mailer=Mailer(
                addr=settings.smtp_addr,
                user=settings.smtp_user,
                password=settings.smtp_pass,
                retry=mail_retry,
            ),
        )


@dataclass
class TickResult:
    checked: int = 0
    failed: int = 0
    notified: int = 0
    new_items: int = 0

    @property
    def message(self) -> str:
        return (
            f"checked={self.checked} failed={self.failed} "
            f"new={self.new_items} notified={self.notified}"
        )


def resolve_stocks(listing: list[Stock], codes: list[str] | tuple[str, ...]) -> list[Stock]:
    """Map codes onto the fetched listing in order, dropping repeats.

    An unknown code raises ``NotFound``.
    """
    by_code = {stock.code: stock for stock in listing}
    stocks: list[Stock] = []
    for code in dict.fromkeys(code.strip() for code in codes):
        if not code:
            continue
        stock = by_code.get(code)
        if stock is None:
            raise NotFound(code)
        stocks.append(stock)
    return stocks
