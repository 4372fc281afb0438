from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Iterator

import requests

from cninfo_watch.date_range import add_years
from cninfo_watch.errors import UpstreamError
from cninfo_watch.models import Announcement, DividendRecord, Stock

logger = logging.getLogger(__name__)

STOCK_LIST_URL = "http://www.cninfo.com.cn/new/data/szse_stock.json"
ANNOUNCEMENT_QUERY_URL = "http://www.cninfo.com.cn/new/hisAnnouncement/query"
DIVIDEND_URL = "http://www.cninfo.com.cn/data20/companyOverview/getCompanyHisDividend"
STATIC_BASE_URL = "http://static.cninfo.com.cn/"

ANNUAL_REPORT_CATEGORY = "category_ndbg_szsh"

QUERY_HEADERS = {
    "Accept": "*/*",
    "Accept-Language": "zh-CN,zh-Hans;q=0.9",
    "Origin": "http://www.cninfo.com.cn",
    "Referer": (
        "http://www.cninfo.com.cn/new/commonUrl/pageOfSearch"
        "?url=disclosure/list/search&lastPage=index"
    ),
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/15.4 Safari/605.1.15"
    ),
    "X-Requested-With": "XMLHttpRequest",
}


@dataclass
class AnnouncementQuery:
    stock: str = "000001,gssz0000001"
    category: str = ANNUAL_REPORT_CATEGORY
    se_date: str = ""
    page_num: int = 1
    page_size: int = 30
    column: str = "szse"
    tab_name: str = "fulltext"
    plate: str = ""
    searchkey: str = ""
    secid: str = ""
    trade: str = ""
    sort_name: str = ""
    sort_type: str = ""
    is_hl_title: str = "true"

    @classmethod
    def for_stock(
        cls,
        stock: Stock,
        start: date,
        end: date,
        category: str = ANNUAL_REPORT_CATEGORY,
    ) -> "AnnouncementQuery":
        return cls(
            stock=f"{stock.code},{stock.org_id}",
            category=category,
            se_date=format_se_date(start, end),
        )

    def to_form(self) -> dict[str, str]:
        se_date = self.se_date
        if not se_date:
            today = date.today()
            se_date = format_se_date(add_years(today, -1), today + timedelta(days=1))
        return {
            "pageNum": str(self.page_num),
            "pageSize": str(self.page_size),
            "column": self.column,
            "tabName": self.tab_name,
            "plate": self.plate,
            "stock": self.stock,
            "searchkey": self.searchkey,
            "secid": self.secid,
            "category": self.category,
            "trade": self.trade,
            "seDate": se_date,
            "sortName": self.sort_name,
            "sortType": self.sort_type,
            "isHLtitle": self.is_hl_title,
        }


@contextmanager
def _decoding(url: str) -> Iterator[None]:
    """Turn a malformed envelope or record into an UpstreamError."""
    try:
        yield
    except (ValueError, TypeError, AttributeError, KeyError) as exc:
        raise UpstreamError(f"{url} returned malformed data", exc) from exc


def format_se_date(start: date, end: date) -> str:
    return f"{start.isoformat()}~{end.isoformat()}"


class CninfoClient:
    def __init__(
        self,
        session: requests.Session | None = None,
        timeout_seconds: int = 20,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout_seconds = timeout_seconds

    def fetch_stock_list(self) -> list[Stock]:
        data = self._request_json("GET", STOCK_LIST_URL)
        with _decoding(STOCK_LIST_URL):
            return [Stock.from_api(item) for item in data.get("stockList") or []]

    def query_announcements(self, query: AnnouncementQuery) -> list[Announcement]:
        """Run one history query; the upstream returns newest first."""
        data = self._request_json(
            "POST",
            ANNOUNCEMENT_QUERY_URL,
            data=query.to_form(),
            headers=QUERY_HEADERS,
        )
        with _decoding(ANNOUNCEMENT_QUERY_URL):
            return [Announcement.from_api(item) for item in data.get("announcements") or []]

    def fetch_dividend_records(self, code: str) -> list[DividendRecord]:
        data = self._request_json("GET", DIVIDEND_URL, params={"scode": code})
        status = str(data.get("code", ""))
        if status != "200":
            raise UpstreamError(f"dividend query failed. code={status}, msg={data.get('msg', '')}")
        with _decoding(DIVIDEND_URL):
            records = (data.get("data") or {}).get("records") or []
            return [DividendRecord.from_api(item) for item in records]

    def download(self, url: str, target: Path) -> int:
        try:
            response = self.session.get(url, timeout=self.timeout_seconds)
        except requests.RequestException as exc:
            raise UpstreamError(f"download failed. url={url}", exc) from exc

        if response.status_code != 200:
            raise UpstreamError(f"download failed. url={url}, status={response.status_code}")

        content = response.content
        expected = response.headers.get("Content-Length")
        if expected is not None and expected.strip() != str(len(content)):
            raise UpstreamError(
                f"content length not match. url={url}, expected={expected}, got={len(content)}"
            )

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return len(content)

    def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self.session.request(method, url, timeout=self.timeout_seconds, **kwargs)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise UpstreamError(f"{method} {url} failed", exc) from exc
        except ValueError as exc:
            raise UpstreamError(f"{method} {url} returned invalid JSON", exc) from exc

        if not isinstance(data, dict):
            raise UpstreamError(f"{method} {url} returned unexpected payload")
        logger.debug("%s %s ok", method, url)
        return data
