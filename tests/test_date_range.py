from datetime import date, timedelta

from cninfo_watch.date_range import add_years, date_windows, resolve_year_range, years_between


def test_add_years_rolls_leap_day_forward() -> None:
    assert add_years(date(2024, 2, 29), 3) == date(2027, 3, 1)
    assert add_years(date(2024, 2, 29), 4) == date(2028, 2, 29)
    assert add_years(date(2020, 5, 4), -3) == date(2017, 5, 4)


def test_date_windows_split_ten_years_into_four_windows() -> None:
    windows = date_windows(date(2000, 1, 1), date(2009, 12, 31), 3)

    assert windows == [
        (date(2000, 1, 1), date(2003, 1, 1)),
        (date(2003, 1, 2), date(2006, 1, 2)),
        (date(2006, 1, 3), date(2009, 1, 3)),
        (date(2009, 1, 4), date(2009, 12, 31)),
    ]


def test_date_windows_have_no_gaps_or_overlaps() -> None:
    windows = date_windows(date(2001, 7, 15), date(2024, 3, 2), 3)

    assert windows[0][0] == date(2001, 7, 15)
    assert windows[-1][1] == date(2024, 3, 2)
    for (_, prev_end), (next_start, _) in zip(windows, windows[1:]):
        assert next_start == prev_end + timedelta(days=1)


def test_date_windows_short_span_is_single_window() -> None:
    assert date_windows(date(2024, 5, 1), date(2024, 5, 1), 3) == [
        (date(2024, 5, 1), date(2024, 5, 1))
    ]
    assert len(date_windows(date(2021, 5, 1), date(2024, 5, 1), 3)) == 1


def test_years_between_walks_year_by_year() -> None:
    assert years_between(date(2023, 10, 19), date(2026, 10, 19)) == [2023, 2024, 2025, 2026]
    assert years_between(date(2023, 12, 1), date(2026, 6, 1)) == [2023, 2024, 2025]


def test_resolve_year_range_defaults_to_latest_three_years() -> None:
    start, end, years = resolve_year_range(date(2026, 10, 19))

    assert start == date(2023, 10, 19)
    assert end == date(2026, 10, 19)
    assert years == [2023, 2024, 2025, 2026]


def test_resolve_year_range_since_2000() -> None:
    start, end, years = resolve_year_range(date(2026, 10, 19), since_2000=True)

    assert start == date(2000, 1, 1)
    assert years[0] == 2000
    assert years[-1] == 2026


def test_resolve_year_range_specified_years_search_following_publish_year() -> None:
    start, end, years = resolve_year_range(date(2026, 10, 19), specified_years=(2021, 2019))

    assert start == date(2020, 1, 1)
    assert end == date(2022, 12, 31)
    assert years == [2019, 2021]


def test_resolve_year_range_clamps_to_today() -> None:
    _, end, _ = resolve_year_range(date(2026, 10, 19), specified_years=(2025,))
    assert end == date(2026, 10, 19)


def test_resolve_year_range_drops_years_not_yet_published() -> None:
    start, end, years = resolve_year_range(date(2024, 5, 1), specified_years=(2022, 2024))

    assert years == [2022]
    assert (start, end) == (date(2023, 1, 1), date(2023, 12, 31))


def test_resolve_year_range_with_no_searchable_year_is_empty() -> None:
    assert resolve_year_range(date(2024, 5, 1), specified_years=(2024,))[2] == []
    assert resolve_year_range(date(2024, 5, 1), specified_years=(1995, 1997))[2] == []
