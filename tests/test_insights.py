"""
Insight engine tests: month bucketing, MoM / YoY deltas, the delta
convention for zero baselines, channel movers and market growth narratives.
"""

import pytest

from analytics.insights import build_insights, pct_change


# ────────────────────────────────────────────
# DELTA CONVENTION
# ────────────────────────────────────────────


class TestPctChange:
    def test_regular_change(self):
        assert pct_change(150, 100) == pytest.approx(0.5)

    def test_zero_baseline_with_current_is_full_increase(self):
        assert pct_change(100, 0) == 1.0

    def test_both_zero_is_flat(self):
        assert pct_change(0, 0) == 0.0

    def test_decline(self):
        assert pct_change(50, 100) == pytest.approx(-0.5)


# ────────────────────────────────────────────
# AVAILABILITY
# ────────────────────────────────────────────


def test_single_month_is_insufficient(make_record):
    records = [make_record("2024-05-01", revenue=10), make_record("2024-05-31", revenue=20)]
    assert build_insights(records) is None


def test_empty_is_insufficient():
    assert build_insights([]) is None


# ────────────────────────────────────────────
# MOM / YOY
# ────────────────────────────────────────────


class TestTwoMonthScenario:
    def test_curr_and_prev(self, two_month_records):
        i = build_insights(two_month_records)
        assert i.curr.revenue == 1500
        assert i.prev.revenue == 1000
        assert i.curr.orders == 25
        assert i.mom.revenue == pytest.approx(0.5)
        assert i.mom.orders == pytest.approx(0.25)
        assert i.mom.roas == pytest.approx(0.0)
        assert i.mom.cvr == pytest.approx((25 / 600 - 0.04) / 0.04)

    def test_labels(self, two_month_records):
        labels = build_insights(two_month_records).labels
        assert labels.curr_label == "Feb 2024"
        assert labels.prev_label == "Jan 2024"
        assert labels.yoy_label == "Feb 2023"

    def test_missing_year_ago_reads_as_zero(self, two_month_records):
        i = build_insights(two_month_records)
        assert i.yoy.revenue == 0
        assert i.yoy.roas == 0
        assert i.yoy_delta.revenue == 1.0
        assert i.yoy_approximate is True

    def test_narratives(self, two_month_records):
        n = build_insights(two_month_records).narratives
        assert n.top_channel == "social channel had the largest MoM ROAS change (0.0%)."
        assert n.best_market == "Austin, TX had the strongest MoM revenue growth (50.0%)."
        assert n.watch_metric == "Watch CVR: Feb 2024 vs Jan 2024 is 4.2% change."

    def test_idempotent(self, two_month_records):
        assert build_insights(two_month_records) == build_insights(two_month_records)


def test_year_ago_bucket_used_when_present(make_record):
    records = [
        make_record("2023-01-15", revenue=800),
        make_record("2023-12-15", revenue=900),
        make_record("2024-01-15", revenue=1000),
    ]
    i = build_insights(records)
    assert i.labels.yoy_label == "Jan 2023"
    assert i.yoy.revenue == 800
    assert i.yoy_delta.revenue == pytest.approx(0.25)
    assert i.yoy_approximate is False
    assert i.prev.revenue == 900


def test_mom_uses_last_two_present_months_across_gaps(make_record):
    records = [make_record("2024-01-10", revenue=200), make_record("2024-06-10", revenue=100)]
    i = build_insights(records)
    assert i.labels.prev_label == "Jan 2024"
    assert i.labels.curr_label == "Jun 2024"
    assert i.mom.revenue == pytest.approx(-0.5)


def test_channel_focus_selects_monthly_spend(make_record):
    records = [
        make_record("2024-01-01", revenue=1000, ad_spend_social=100, ad_spend_search=400),
        make_record("2024-02-01", revenue=1000, ad_spend_social=200, ad_spend_search=400),
    ]
    assert build_insights(records, "social").curr.roas == pytest.approx(5.0)
    assert build_insights(records, "search").curr.roas == pytest.approx(2.5)
    assert build_insights(records).curr.roas == pytest.approx(1000 / 600)


# ────────────────────────────────────────────
# MOVERS
# ────────────────────────────────────────────


def test_largest_absolute_roas_mover_wins(make_record):
    records = [
        make_record("2024-01-01", revenue=1000, ad_spend_social=100, ad_spend_search=100, ad_spend_display=100),
        make_record("2024-02-01", revenue=1000, ad_spend_social=100, ad_spend_search=400, ad_spend_display=80),
    ]
    i = build_insights(records)
    movers = {m.channel: m for m in i.channel_movers}
    assert movers["social"].d_roas == pytest.approx(0.0)
    assert movers["search"].d_roas == pytest.approx(-0.75)
    assert movers["display"].d_roas == pytest.approx(0.25)
    assert i.narratives.top_channel == "search channel had the largest MoM ROAS change (-75.0%)."


def test_channel_movers_ignore_focus(make_record):
    records = [
        make_record("2024-01-01", revenue=1000, ad_spend_search=100),
        make_record("2024-02-01", revenue=2000, ad_spend_search=100),
    ]
    assert build_insights(records, "social").channel_movers == build_insights(records).channel_movers


def test_best_market_is_highest_signed_growth(make_record):
    records = [
        make_record("2024-01-01", "Austin", "TX", revenue=1000),
        make_record("2024-02-01", "Austin", "TX", revenue=100),
        make_record("2024-01-01", "Dallas", "TX", revenue=100),
        make_record("2024-02-01", "Dallas", "TX", revenue=110),
    ]
    i = build_insights(records)
    assert i.market_growth[0].market == "Dallas, TX"
    assert i.market_growth[0].growth == pytest.approx(0.1)
    assert i.market_growth[-1].growth == pytest.approx(-0.9)
    assert i.narratives.best_market == "Dallas, TX had the strongest MoM revenue growth (10.0%)."


def test_market_with_single_month_compares_against_zero(make_record):
    records = [
        make_record("2024-01-01", "Austin", "TX", revenue=100),
        make_record("2024-02-01", "Austin", "TX", revenue=100),
        make_record("2024-02-01", "Boise", "ID", revenue=50),
    ]
    growth = {g.market: g for g in build_insights(records).market_growth}
    assert growth["Boise, ID"].growth == 1.0
    assert growth["Boise, ID"].prev_revenue == 0
    assert growth["Austin, TX"].growth == 0.0


def test_to_dict_is_plain_data(two_month_records):
    payload = build_insights(two_month_records).to_dict()
    assert payload["labels"]["curr_label"] == "Feb 2024"
    assert payload["curr"]["revenue"] == 1500
    assert payload["narratives"]["best_market"].startswith("Austin, TX")
    assert [m["channel"] for m in payload["channel_movers"]] == ["social", "search", "display"]
