from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date
from typing import Iterable, List, Literal, Optional, Tuple

import pandas as pd

Channel = Literal["social", "search", "display"]
MarketKey = Tuple[str, str]

CHANNELS: Tuple[Channel, ...] = ("social", "search", "display")
ALL = "All"


def safe_div(numerator: float, denominator: float) -> float:
    """Ratio with the zero-denominator-yields-zero convention used by every KPI."""
    if not denominator or pd.isna(denominator):
        return 0.0
    out = float(numerator) / float(denominator)
    if pd.isna(out):
        return 0.0
    return out


def market_label(key: MarketKey) -> str:
    city, state = key
    return f"{city}, {state}"


def parse_channel(value: object) -> Optional[Channel]:
    if value is None:
        return None
    s = str(value).strip().lower()
    for ch in CHANNELS:
        if s == ch:
            return ch
    return None


@dataclass(frozen=True)
class Record:
    date: date
    location_id: str
    city: str
    state: str
    region: str
    sessions: int = 0
    page_views: int = 0
    bounce_rate: float = 0.0
    conversion_rate: float = 0.0
    online_orders: int = 0
    avg_order_value: float = 0.0
    revenue: float = 0.0
    ad_spend_social: float = 0.0
    ad_spend_search: float = 0.0
    ad_spend_display: float = 0.0
    impressions_social: int = 0
    impressions_search: int = 0
    impressions_display: int = 0
    clicks_social: int = 0
    clicks_search: int = 0
    clicks_display: int = 0

    @property
    def market_key(self) -> MarketKey:
        return (self.city, self.state)

    @property
    def market(self) -> str:
        return market_label(self.market_key)

    def spend(self, channel: Optional[Channel] = None) -> float:
        if channel is None:
            return self.ad_spend_social + self.ad_spend_search + self.ad_spend_display
        return getattr(self, f"ad_spend_{channel}")

    def clicks(self, channel: Optional[Channel] = None) -> int:
        if channel is None:
            return self.clicks_social + self.clicks_search + self.clicks_display
        return getattr(self, f"clicks_{channel}")

    def impressions(self, channel: Optional[Channel] = None) -> int:
        if channel is None:
            return self.impressions_social + self.impressions_search + self.impressions_display
        return getattr(self, f"impressions_{channel}")


RECORD_FIELDS: List[str] = [f.name for f in fields(Record)]
SPEND_COLUMNS = {ch: f"ad_spend_{ch}" for ch in CHANNELS}
CLICK_COLUMNS = {ch: f"clicks_{ch}" for ch in CHANNELS}
IMPRESSION_COLUMNS = {ch: f"impressions_{ch}" for ch in CHANNELS}


def records_to_frame(records: Iterable[Record]) -> pd.DataFrame:
    """One row per record with every Record column present, even for empty input."""
    rows = [tuple(getattr(r, name) for name in RECORD_FIELDS) for r in records]
    df = pd.DataFrame.from_records(rows, columns=RECORD_FIELDS)
    df["date"] = pd.to_datetime(df["date"])
    for col in RECORD_FIELDS:
        if col in {"date", "location_id", "city", "state", "region"}:
            continue
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0)
    df["spend_total"] = df[list(SPEND_COLUMNS.values())].sum(axis=1)
    df["market"] = df["city"].astype(str) + ", " + df["state"].astype(str)
    return df


def focus_spend(df: pd.DataFrame, channel_focus: Optional[Channel]) -> pd.Series:
    """Spend column selected by the channel focus; all three channels when unset."""
    if channel_focus is None:
        return df["spend_total"]
    return df[SPEND_COLUMNS[channel_focus]]
