from datetime import date

import pytest

from analytics.records import Record


def _record(day="2024-01-01", city="Austin", state="TX", **overrides) -> Record:
    values = {
        "date": date.fromisoformat(day) if isinstance(day, str) else day,
        "location_id": overrides.pop("location_id", f"{city[:3].upper()}-001"),
        "city": city,
        "state": state,
        "region": overrides.pop("region", "South"),
    }
    values.update(overrides)
    return Record(**values)


@pytest.fixture
def make_record():
    """Factory for Records; unspecified metrics default to 0."""
    return _record


@pytest.fixture
def two_month_records():
    """Austin, TX across Jan and Feb 2024 with social spend only."""
    return [
        _record(
            "2024-01-01",
            revenue=1000,
            online_orders=20,
            sessions=500,
            ad_spend_social=100,
            clicks_social=50,
            impressions_social=1000,
        ),
        _record(
            "2024-02-01",
            revenue=1500,
            online_orders=25,
            sessions=600,
            ad_spend_social=150,
            clicks_social=60,
            impressions_social=1200,
        ),
    ]


@pytest.fixture
def multi_market_records():
    return [
        _record("2024-03-01", "Austin", "TX", revenue=500, ad_spend_search=50),
        _record("2024-03-01", "Dallas", "TX", revenue=800, ad_spend_search=40),
        _record("2024-03-02", "Austin", "TX", revenue=300, ad_spend_display=30),
        _record("2024-03-05", "Portland", "OR", revenue=200, ad_spend_social=20),
        _record("2024-03-09", "Austin", "TX", revenue=100, ad_spend_social=10),
    ]
