from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SPECIAL_DIVIDEND = "特别分红"
MISSING_DATE = "--"


def _text(raw: dict[str, Any], key: str) -> str:
    value = raw.get(key)
    return "" if value is None else str(value).strip()


@dataclass
class Stock:
    code: str
    name: str
    pinyin: str = ""
    category: str = ""
    org_id: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Stock":
        return cls(
            code=_text(raw, "code"),
            name=_text(raw, "zwjc"),
            pinyin=_text(raw, "pinyin"),
            category=_text(raw, "category"),
            org_id=_text(raw, "orgId"),
        )


@dataclass
class Announcement:
    id: str
    title: str
    time: int
    adjunct_url: str = ""
    adjunct_type: str = ""
    sec_code: str = ""
    sec_name: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Announcement":
        return cls(
            id=_text(raw, "announcementId"),
            title=_text(raw, "announcementTitle"),
            time=int(raw.get("announcementTime") or 0),
            adjunct_url=_text(raw, "adjunctUrl"),
            adjunct_type=_text(raw, "adjunctType"),
            sec_code=_text(raw, "secCode"),
            sec_name=_text(raw, "secName"),
        )

    @property
    def numeric_id(self) -> int:
        try:
            return int(self.id)
        except ValueError:
            return 0


@dataclass
class DividendRecord:
    period: str
    plan: str
    record_date: str = ""
    ex_dividend_date: str = ""
    pay_date: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "DividendRecord":
        return cls(
            period=_text(raw, "F001V"),
            plan=_text(raw, "F007V"),
            record_date=_text(raw, "F018D"),
            ex_dividend_date=_text(raw, "F020D"),
            pay_date=_text(raw, "F023D"),
        )

    @property
    def display_period(self) -> str:
        return self.period or SPECIAL_DIVIDEND


@dataclass(frozen=True)
class AnnualReport:
    year: int
    title: str
    url: str
    publish_time: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "title": self.title,
            "url": self.url,
            "publish_time": self.publish_time,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "AnnualReport":
        return cls(
            year=int(raw["year"]),
            title=str(raw["title"]),
            url=str(raw["url"]),
            publish_time=int(raw["publish_time"]),
        )


@dataclass
class TrackedStock:
    code: str
    name: str
    pinyin: str = ""
    org_id: str = ""
    annual_report_check_time: int = 0
    annual_reports: list[AnnualReport] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "pinyin": self.pinyin,
            "org_id": self.org_id,
            "annual_report_check_time": self.annual_report_check_time,
            "annual_reports": [report.to_dict() for report in self.annual_reports],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "TrackedStock":
        return cls(
            code=str(raw["code"]),
            name=str(raw.get("name") or ""),
            pinyin=str(raw.get("pinyin") or ""),
            org_id=str(raw.get("org_id") or ""),
            annual_report_check_time=int(raw.get("annual_report_check_time") or 0),
            annual_reports=[
                AnnualReport.from_dict(item) for item in raw.get("annual_reports") or []
            ],
        )

    def as_stock(self) -> Stock:
        return Stock(code=self.code, name=self.name, pinyin=self.pinyin, org_id=self.org_id)


@dataclass
class Database:
    stocks: list[TrackedStock] = field(default_factory=list)
    _index: dict[str, TrackedStock] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._index = {stock.code: stock for stock in self.stocks}

    def get(self, code: str) -> TrackedStock | None:
        return self._index.get(code)

    def add(self, stock: TrackedStock) -> bool:
        if stock.code in self._index:
            return False
        self.stocks.append(stock)
        self._index[stock.code] = stock
        return True

    def sort(self) -> None:
        self.stocks.sort(key=lambda item: item.code)

    def to_dict(self) -> dict[str, Any]:
        return {"stocks": [stock.to_dict() for stock in self.stocks]}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Database":
        return cls(stocks=[TrackedStock.from_dict(item) for item in raw.get("stocks") or []])
