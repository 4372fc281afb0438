from pathlib import Path

import pytest

from cninfo_watch.errors import MalformedRecord, PersistenceError
from cninfo_watch.models import Announcement, AnnualReport, Database, DividendRecord, Stock, TrackedStock
from cninfo_watch.storage import DatabaseStore, TextStore


def test_read_missing_files_returns_empty(tmp_path: Path) -> None:
    store = TextStore(tmp_path)

    assert store.read_stocks("watch.txt") == []
    assert store.read_codes("codes.txt") == []
    assert store.read_report_announcements("000001") == []


def test_stock_list_keeps_column_order(tmp_path: Path) -> None:
    store = TextStore(tmp_path)
    stock = Stock(code="000001", name="平安银行", pinyin="payh", category="A股", org_id="gssz0000001")

    store.write_stocks("stocks.txt", [stock])

    assert (tmp_path / "stocks.txt").read_text(encoding="utf-8") == (
        "000001,平安银行,payh,A股,gssz0000001\n"
    )
    assert store.read_stocks("stocks.txt") == [stock]


def test_malformed_stock_line_raises(tmp_path: Path) -> None:
    (tmp_path / "watch.txt").write_text("000001,平安银行,payh\n", encoding="utf-8")

    with pytest.raises(MalformedRecord) as excinfo:
        TextStore(tmp_path).read_stocks("watch.txt")
    assert excinfo.value.line_no == 1


def test_read_codes_ignores_blank_lines(tmp_path: Path) -> None:
    (tmp_path / "codes.txt").write_text("000001\n\n 000002 \n", encoding="utf-8")

    assert TextStore(tmp_path).read_codes("codes.txt") == ["000001", "000002"]


def test_dividend_records_fill_placeholders(tmp_path: Path) -> None:
    store = TextStore(tmp_path)
    records = [
        DividendRecord(period="", plan="10派5", record_date="2024-04-29", ex_dividend_date="2024-04-30"),
        DividendRecord(
            period="2022年报",
            plan="10派2.85",
            record_date="2023-06-13",
            ex_dividend_date="2023-06-14",
            pay_date="2023-06-14",
        ),
    ]

    assert store.write_dividend_records("000001", records) is True

    lines = store.dividend_path("000001").read_text(encoding="utf-8").splitlines()
    assert lines == [
        "特别分红,10派5,2024-04-29,2024-04-30,--",
        "2022年报,10派2.85,2023-06-13,2023-06-14,2023-06-14",
    ]


def test_empty_dividend_records_are_not_written(tmp_path: Path) -> None:
    store = TextStore(tmp_path)

    assert store.write_dividend_records("000001", []) is False
    assert not store.dividend_path("000001").exists()


def test_report_announcements_survive_commas_in_titles(tmp_path: Path) -> None:
    store = TextStore(tmp_path)
    item = Announcement(id="1216", title="2023年年度报告(更新后),全文", time=1714000000000, adjunct_url="a.PDF")

    store.write_report_announcements("000001", [item])

    assert store.read_report_announcements("000001") == [item]


def test_legacy_report_lines_have_zero_time(tmp_path: Path) -> None:
    path = tmp_path / "report" / "000001.txt"
    path.parent.mkdir()
    path.write_text("1216,2023年年度报告,finalpage/a.PDF\n", encoding="utf-8")

    items = TextStore(tmp_path).read_report_announcements("000001")

    assert items[0].id == "1216"
    assert items[0].time == 0


def test_writing_no_report_announcements_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(PersistenceError):
        TextStore(tmp_path).write_report_announcements("000001", [])


def test_database_missing_file_loads_empty(tmp_path: Path) -> None:
    database = DatabaseStore(tmp_path / "annualreport.json").load()

    assert database.stocks == []


def test_database_save_then_load(tmp_path: Path) -> None:
    store = DatabaseStore(tmp_path / "db" / "annualreport.json")
    report = AnnualReport(year=2022, title="2022年年度报告", url="http://static/a.PDF", publish_time=1)
    database = Database(
        stocks=[TrackedStock(code="000001", name="平安银行", annual_report_check_time=5, annual_reports=[report])]
    )

    store.save(database)
    loaded = store.load()

    assert loaded.get("000001").annual_reports == [report]
    assert loaded.get("000001").annual_report_check_time == 5
    assert not (tmp_path / "db" / "annualreport.json.tmp").exists()


def test_database_corrupt_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "annualreport.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(PersistenceError):
        DatabaseStore(path).load()


def test_malformed_line_number_counts_blank_lines(tmp_path: Path) -> None:
    path = tmp_path / "report" / "000001.txt"
    path.parent.mkdir()
    path.write_text("1,2022年年度报告,a.PDF,1\n\n2,2023年年度报告\n", encoding="utf-8")

    with pytest.raises(MalformedRecord) as excinfo:
        TextStore(tmp_path).read_report_announcements("000001")
    assert excinfo.value.line_no == 3
    assert "expected 4 or 3 fields" in str(excinfo.value)


def test_database_with_wrong_shape_raises(tmp_path: Path) -> None:
    path = tmp_path / "annualreport.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(PersistenceError):
        DatabaseStore(path).load()
