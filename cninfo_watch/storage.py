from __future__ import annotations

import csv
import io
import json
import logging
import os
from pathlib import Path
from typing import Iterable

from cninfo_watch.errors import MalformedRecord, PersistenceError
from cninfo_watch.models import (
    MISSING_DATE,
    Announcement,
    Database,
    DividendRecord,
    Stock,
)

logger = logging.getLogger(__name__)

STOCK_FIELDS = 5
DIVIDEND_FIELDS = 5
REPORT_FIELDS = 4
LEGACY_REPORT_FIELDS = 3


def _atomic_write(path: Path, text: str) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as exc:
        raise PersistenceError(f"write {path} failed: {exc}") from exc


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise PersistenceError(f"read {path} failed: {exc}") from exc


def _to_lines(rows: Iterable[list[str]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerows(rows)
    return buf.getvalue()


def _read_rows(path: Path, *expected: int) -> list[tuple[int, list[str]]]:
    """Return ``(line_no, fields)`` pairs, line numbers counted in the file."""
    text = _read_text(path)
    if text is None:
        return []
    rows: list[tuple[int, list[str]]] = []
    reader = csv.reader(io.StringIO(text))
    for row in reader:
        if not row:
            continue
        if len(row) not in expected:
            accepted = " or ".join(str(count) for count in expected)
            raise MalformedRecord(
                path, reader.line_num, f"expected {accepted} fields, got {len(row)}"
            )
        rows.append((reader.line_num, row))
    return rows


class TextStore:
    """Line-oriented files under one data directory.

    Layout: ``<dir>/<listing>.txt``, ``<dir>/dividend/<code>.txt`` and
    ``<dir>/report/<code>.txt``.
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir

    def path(self, name: str) -> Path:
        return self.data_dir / name

    def write_stocks(self, name: str, stocks: list[Stock]) -> None:
        rows = [
            [stock.code, stock.name, stock.pinyin, stock.category, stock.org_id]
            for stock in stocks
        ]
        _atomic_write(self.path(name), _to_lines(rows))
        logger.info("write stock list success. file=%s count=%d", name, len(stocks))

    def read_stocks(self, name: str) -> list[Stock]:
        return [
            Stock(code=row[0], name=row[1], pinyin=row[2], category=row[3], org_id=row[4])
            for _, row in _read_rows(self.path(name), STOCK_FIELDS)
        ]

    def read_codes(self, name: str) -> list[str]:
        text = _read_text(self.path(name))
        if text is None:
            return []
        return [line.strip() for line in text.splitlines() if line.strip()]

    def dividend_path(self, code: str) -> Path:
        return self.data_dir / "dividend" / f"{code}.txt"

    def write_dividend_records(self, code: str, records: list[DividendRecord]) -> bool:
        if not records:
            logger.info("write dividend records skip. no dividend record. code=%s", code)
            return False
        rows = [
            [
                record.display_period,
                record.plan,
                record.record_date,
                record.ex_dividend_date,
                record.pay_date or MISSING_DATE,
            ]
            for record in records
        ]
        _atomic_write(self.dividend_path(code), _to_lines(rows))
        logger.info("write dividend records success. code=%s count=%d", code, len(records))
        return True

    def report_path(self, code: str) -> Path:
        return self.data_dir / "report" / f"{code}.txt"

    def read_report_announcements(self, code: str) -> list[Announcement]:
        announcements: list[Announcement] = []
        path = self.report_path(code)
        for line_no, row in _read_rows(path, REPORT_FIELDS, LEGACY_REPORT_FIELDS):
            raw_time = row[3] if len(row) == REPORT_FIELDS else ""
            if raw_time and not raw_time.isdigit():
                raise MalformedRecord(path, line_no, f"invalid time {raw_time!r}")
            published = int(raw_time) if raw_time else 0
            announcements.append(
                Announcement(id=row[0], title=row[1], adjunct_url=row[2], time=published)
            )
        return announcements

    def write_report_announcements(self, code: str, announcements: list[Announcement]) -> None:
        if not announcements:
            raise PersistenceError(f"no announcement to write. code={code}")
        rows = [
            [item.id, item.title, item.adjunct_url, str(item.time)] for item in announcements
        ]
        _atomic_write(self.report_path(code), _to_lines(rows))


class DatabaseStore:
    """Single JSON document holding every tracked stock and its annual reports."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> Database:
        text = _read_text(self.path)
        if text is None:
            return Database()
        try:
            raw = json.loads(text)
            if not isinstance(raw, dict):
                raise TypeError(f"expected a JSON object, got {type(raw).__name__}")
            return Database.from_dict(raw)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise PersistenceError(f"parse {self.path} failed: {exc}") from exc

    def save(self, database: Database) -> None:
        text = json.dumps(database.to_dict(), ensure_ascii=False, indent=2)
        _atomic_write(self.path, text)
        logger.debug("save database. file=%s stocks=%d", self.path, len(database.stocks))
