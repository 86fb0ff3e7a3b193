"""
Filter engine tests: date bounds, market selection, channel handling and
filter normalization from loosely typed payloads.
"""
from datetime import date, datetime

import pandas as pd

from analytics.filters import (
    DashboardFilters,
    apply_filters,
    channel_options,
    date_extent,
    filter_records,
    market_options,
    normalize_filters,
)


# ---------------------------------------------------------------------------
# filter_records
# ---------------------------------------------------------------------------

class TestFilterRecords:
    def test_market_filter_exact_match_preserves_order(self, multi_market_records):
        out = filter_records(multi_market_records, DashboardFilters(market="Austin, TX"))
        assert [r.revenue for r in out] == [500, 300, 100]
        assert all(r.city == "Austin" and r.state == "TX" for r in out)

    def test_all_market_keeps_everything(self, multi_market_records):
        assert filter_records(multi_market_records, DashboardFilters()) == multi_market_records

    def test_start_date_only_is_unbounded_above(self, multi_market_records):
        out = filter_records(multi_market_records, DashboardFilters(start_date=date(2024, 3, 2)))
        assert [r.date for r in out] == [date(2024, 3, 2), date(2024, 3, 5), date(2024, 3, 9)]

    def test_date_bounds_are_inclusive(self, multi_market_records):
        f = DashboardFilters(start_date=date(2024, 3, 1), end_date=date(2024, 3, 5))
        out = filter_records(multi_market_records, f)
        assert len(out) == 4
        assert max(r.date for r in out) == date(2024, 3, 5)

    def test_channel_does_not_drop_rows(self, multi_market_records):
        out = filter_records(multi_market_records, DashboardFilters(channel="social"))
        assert out == multi_market_records

    def test_no_match_returns_empty_list(self, multi_market_records):
        assert filter_records(multi_market_records, DashboardFilters(market="Nowhere, ZZ")) == []

    def test_input_not_mutated(self, multi_market_records):
        before = list(multi_market_records)
        filter_records(multi_market_records, DashboardFilters(market="Dallas, TX"))
        assert multi_market_records == before


def test_apply_filters_keyword_form(multi_market_records):
    out = apply_filters(multi_market_records, date_range=(None, date(2024, 3, 1)), market="Dallas, TX", channel="search")
    assert [r.city for r in out] == ["Dallas"]


def test_apply_filters_accepts_timestamp_bounds(multi_market_records):
    out = apply_filters(multi_market_records, date_range=(pd.Timestamp("2024-03-02"), datetime(2024, 3, 5, 18, 30)))
    assert [r.date for r in out] == [date(2024, 3, 2), date(2024, 3, 5)]


# ---------------------------------------------------------------------------
# normalize_filters
# ---------------------------------------------------------------------------

class TestNormalizeFilters:
    def test_defaults_to_dataset_extent(self):
        f = normalize_filters({}, available_dates=(date(2024, 1, 1), date(2024, 6, 30)))
        assert f.start_date == date(2024, 1, 1)
        assert f.end_date == date(2024, 6, 30)
        assert f.market == "All"
        assert f.channel == "All"
        assert f.channel_focus is None

    def test_parses_iso_strings(self):
        f = normalize_filters({"start_date": "2024-02-01", "end_date": "2024-02-29"})
        assert f.start_date == date(2024, 2, 1)
        assert f.end_date == date(2024, 2, 29)

    def test_unparseable_date_becomes_none(self):
        f = normalize_filters({"start_date": "not-a-date", "end_date": "2024-02-29"})
        assert f.start_date is None
        assert f.end_date == date(2024, 2, 29)

    def test_swaps_reversed_range(self):
        f = normalize_filters({"start_date": "2024-03-01", "end_date": "2024-01-01"})
        assert f.start_date == date(2024, 1, 1)
        assert f.end_date == date(2024, 3, 1)

    def test_unknown_market_kept_and_selects_nothing(self, multi_market_records):
        f = normalize_filters({"market": "Nowhere, ZZ"})
        assert f.market == "Nowhere, ZZ"
        assert filter_records(multi_market_records, f) == []

    def test_known_market_kept(self):
        assert normalize_filters({"market": " Austin, TX "}).market == "Austin, TX"

    def test_blank_market_is_all(self):
        assert normalize_filters({"market": ""}).market == "All"

    def test_channel_normalized(self):
        assert normalize_filters({"channel": "Search"}).channel_focus == "search"
        assert normalize_filters({"channel": "tv"}).channel == "All"


def test_market_options_sorted_with_sentinel(multi_market_records):
    assert market_options(multi_market_records) == ["All", "Austin, TX", "Dallas, TX", "Portland, OR"]


def test_channel_options():
    assert channel_options() == ["All", "social", "search", "display"]


def test_date_extent(multi_market_records):
    assert date_extent(multi_market_records) == (date(2024, 3, 1), date(2024, 3, 9))
    assert date_extent([]) == (None, None)
