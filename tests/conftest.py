from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import pytest

from cninfo_watch.cninfo_client import AnnouncementQuery
from cninfo_watch.config import Settings
from cninfo_watch.context import RunContext
from cninfo_watch.errors import UpstreamError
from cninfo_watch.mailer import Mailer
from cninfo_watch.models import Announcement, DividendRecord, Stock
from cninfo_watch.retry import RetryPolicy
from cninfo_watch.storage import TextStore


def ms(year: int, month: int, day: int, hour: int = 12) -> int:
    return int(datetime(year, month, day, hour).timestamp() * 1000)


def announcement(id: str, title: str, published: int, adjunct_type: str = "PDF") -> Announcement:
    return Announcement(
        id=id,
        title=title,
        time=published,
        adjunct_url=f"finalpage/{id}.PDF",
        adjunct_type=adjunct_type,
    )


class FakeClient:
    """In-memory stand-in for CninfoClient."""

    def __init__(self) -> None:
        self.stocks: list[Stock] = []
        self.announcements: dict[str, list[Announcement]] = {}
        self.dividends: dict[str, list[DividendRecord]] = {}
        self.failing_codes: set[str] = set()
        self.queries: list[AnnouncementQuery] = []
        self.downloads: list[tuple[str, Path]] = []

    def fetch_stock_list(self) -> list[Stock]:
        return list(self.stocks)

    def query_announcements(self, query: AnnouncementQuery) -> list[Announcement]:
        self.queries.append(query)
        code = query.stock.split(",")[0]
        if code in self.failing_codes:
            raise UpstreamError(f"query failed for {code}")
        start, end = (date.fromisoformat(part) for part in query.se_date.split("~"))
        matched = [
            item
            for item in self.announcements.get(code, [])
            if start <= datetime.fromtimestamp(item.time / 1000).date() <= end
        ]
        return sorted(matched, key=lambda item: item.time, reverse=True)

    def fetch_dividend_records(self, code: str) -> list[DividendRecord]:
        if code in self.failing_codes:
            raise UpstreamError(f"dividend failed for {code}")
        return list(self.dividends.get(code, []))

    def download(self, url: str, target: Path) -> int:
        self.downloads.append((url, target))
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(b"%PDF-1.4")
        return 8


class FakeSMTP:
    def __init__(self, outbox: list, host: str, port: int, timeout: int | None = None) -> None:
        self.outbox = outbox
        self.host = host
        self.port = port

    def __enter__(self) -> "FakeSMTP":
        return self

    def __exit__(self, *exc: object) -> bool:
        return False

    def ehlo(self) -> None:
        pass

    def has_extn(self, name: str) -> bool:
        return False

    def login(self, user: str, password: str) -> None:
        pass

    def send_message(self, msg) -> None:
        self.outbox.append(msg)


@pytest.fixture
def outbox() -> list:
    return []


@pytest.fixture
def smtp_factory(outbox: list):
    def factory(host: str, port: int, timeout: int | None = None) -> FakeSMTP:
        return FakeSMTP(outbox, host, port, timeout)

    return factory


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    for name in (
        "CNINFO_CODES",
        "CNINFO_DB_PATH",
        "CNINFO_DOWNLOAD_DIR",
        "CNINFO_SMTP_ADDR",
        "CNINFO_CHECK_INTERVAL_SECONDS",
        "CNINFO_CHECKPOINT_EVERY",
        "CNINFO_UPDATE_INTERVAL_MS",
    ):
        monkeypatch.delenv(name, raising=False)
    return replace(
        Settings.from_env(data_dir=tmp_path),
        smtp_addr="smtp.example.com:25",
        smtp_user="me@example.com",
        smtp_pass="secret",
    )


@pytest.fixture
def client() -> FakeClient:
    fake = FakeClient()
    fake.stocks = [
        Stock(code="000001", name="平安银行", pinyin="payh", category="A股", org_id="gssz0000001"),
        Stock(code="000002", name="万科A", pinyin="wka", category="A股", org_id="gssz0000002"),
    ]
    return fake


@pytest.fixture
def ctx(settings: Settings, client: FakeClient, smtp_factory) -> RunContext:
    return RunContext(
        settings=settings,
        client=client,
        store=TextStore(settings.data_dir),
        mailer=Mailer(
            addr=settings.smtp_addr,
            user=settings.smtp_user,
            password=settings.smtp_pass,
            retry=RetryPolicy(max_attempts=1, backoff_seconds=0),
            smtp_factory=smtp_factory,
        ),
        today=lambda: date(2024, 5, 1),
    )
